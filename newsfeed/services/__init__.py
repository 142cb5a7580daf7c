"""
Domain services. Each wraps a ``RecordStore`` with input validation and
record shaping; errors from the store propagate unchanged.
"""
