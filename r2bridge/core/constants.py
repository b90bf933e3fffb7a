#!/usr/bin/env python3
"""
r2bridge Core Constants - wire protocol and lifecycle values

This module contains the constants shared by the framing reader, the
transports and the session.
"""

# =============================================================================
# Wire Protocol
# =============================================================================
# radare2 in -q0 mode terminates every response with a single NUL byte
FRAME_TERMINATOR = b"\x00"
REQUEST_NEWLINE = b"\n"
# Stripped from the right edge of every decoded response
RESPONSE_TRIM_CHARS = "\n\x00"
# Bytes requested per peek while scanning for the terminator
FRAME_CHUNK_SIZE = 4096
RESPONSE_ENCODING = "utf-8"

# =============================================================================
# Process Launch
# =============================================================================
DEFAULT_R2_EXECUTABLE = "radare2"
DEFAULT_R2_FLAGS = ("-q0",)

# =============================================================================
# Commands
# =============================================================================
QUIT_COMMAND = "q"
FORCE_QUIT_COMMAND = "q!"
STDERR_CHANNEL_COMMAND = "===stderr"
OPEN_FILE_COMMAND = "o"

# =============================================================================
# Inherited Handles
# =============================================================================
# Set by radare2 when it runs a script through #!pipe or r2 -i
R2PIPE_IN_ENV = "R2PIPE_IN"
R2PIPE_OUT_ENV = "R2PIPE_OUT"

# =============================================================================
# Timing (seconds)
# =============================================================================
DEFAULT_CLOSE_TIMEOUT = 10.0
DEFAULT_EVENT_POLL_INTERVAL = 0.05
TERMINATE_GRACE_SECONDS = 2.0

# =============================================================================
# Diagnostics
# =============================================================================
# Max lines retained from the child's stderr drain
MAX_DIAGNOSTIC_LINES = 1000

# =============================================================================
# Native Library
# =============================================================================
DEFAULT_NATIVE_LIBRARY = "libr_core"
SYMBOL_CORE_NEW = "r_core_new"
SYMBOL_CORE_FREE = "r_core_free"
SYMBOL_CORE_CMD_STR = "r_core_cmd_str"
