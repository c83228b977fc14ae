"""
Constants used throughout the interview monitor.
"""

# Instruction used when nothing needs to change in the interviewer's behaviour
DEFAULT_INSTRUCTION = "No intervention needed."

# Prefix for the instruction persisted when a monitor cycle fails
ERROR_INSTRUCTION_PREFIX = "Error processing conversation:"

# Request types accepted by the interview-event endpoint
REQUEST_TYPE_CONVERSATION_BATCH = "conversation_batch"
REQUEST_TYPE_UPDATE_TOOLS = "update_tools"
REQUEST_TYPE_UTTERANCE = "utterance"

# Roles as delivered by the realtime transport
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

# The user entry of a paired exchange is stamped this much earlier than the assistant entry
PAIR_TIMESTAMP_OFFSET_MS = 1

# Error messages
ERROR_NO_SESSION_ID = "Session ID is required."
ERROR_NO_MESSAGES = "No messages provided"
