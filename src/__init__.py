"""
Browser Session Harness

Drives a single interactive browser session through a scripted
automation task:
- Startup validation of operating parameters
- Page readiness synchronization
- Human-in-the-loop prompts with timeouts
- Screenshot-on-error and guaranteed teardown
"""

__version__ = "0.1.0"
