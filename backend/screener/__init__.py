"""Content Screener backend.

Screens user comments and reviews for toxic content.

Modules:
    - core: Configuration, database, Redis, Celery, logging, tracing, metrics
    - modules.classifier: External text-classification adapter
    - modules.moderation: Decision engine, preview checks and submissions
    - modules.queue: Moderation queue brokers and worker pool
    - modules.flag: Flag records and admin review
    - modules.notification: Owner email notifications
    - modules.stats: Dashboard statistics
    - modules.auth: Bearer-token principals
"""

__version__ = "0.1.0"
