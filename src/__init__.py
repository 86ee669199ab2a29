"""
AntiSpam - Source Package
=========================

Cross-channel spam detection core for chat communities.

Package Structure:
- core/: config, logger, errors, sqlite store, health server
- services/antispam/: cache, detectors, incident lifecycle, service
- utils/: async helpers and duration formatting
- bootstrap.py: per-process component wiring
"""
