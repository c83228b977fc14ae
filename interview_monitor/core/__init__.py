"""
Core monitor logic: the conversation buffer and the monitor orchestrator.
"""
