"""
Queue workers: job handlers, bounded worker pools and the worker process.
"""
