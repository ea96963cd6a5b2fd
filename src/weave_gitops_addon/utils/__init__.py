# ABOUTME: Utilities package initialization for the Weave GitOps add-on
# ABOUTME: Contains shared logging and secret masking helpers

"""
Weave GitOps add-on utilities

Shared utilities:
    - logging.py: Structured logging with run IDs and audit trail
    - masking.py: Secret masking for anything that ends up in a log
"""
