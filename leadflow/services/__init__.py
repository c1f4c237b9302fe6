"""
Pipeline services: state tracking, dedup/upsert, fingerprints and the
operational pipeline facade.
"""
