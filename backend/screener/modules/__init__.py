"""Feature modules.

- classifier: External classifier adapter
- moderation: Decision engine, preview checks, submissions and routers
- queue: Moderation queue and worker pool
- flag: Flag records and admin transitions
- notification: Owner email notifications
- stats: Dashboard statistics
- auth: Principal resolution and role checks
"""
