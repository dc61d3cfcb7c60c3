"""
Redis-backed retry coordination for RQ jobs.

Failed jobs are re-enqueued on a fixed backoff schedule, using a shared
attempt counter so every worker agrees on which attempt it is running.
"""

__version__ = "0.1.0"
