"""
API routers for the interview monitor.
"""
