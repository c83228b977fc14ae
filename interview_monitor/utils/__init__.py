"""
Utilities for the interview monitor: configuration, constants, errors and job data loading.
"""
