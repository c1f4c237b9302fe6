"""
leadflow: raw-to-structured lead transformation pipeline.
"""
