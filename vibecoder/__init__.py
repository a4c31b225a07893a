"""Vibecoder.

Turns task descriptions into code through pluggable LLM providers, then
runs, tests and auto-repairs that code with a versioned, revertible file
history.

Subpackages / modules:
    llm           - Provider clients and the provider router
    file_store    - Versioned file writes, change log and revert
    terminal      - Persistent shell session for commands
    recovery      - Error classification and LLM repair requests
    orchestrator  - The generate/test/repair task pipeline
"""

__version__ = "0.1.0"
