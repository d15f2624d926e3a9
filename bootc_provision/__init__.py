"""bootc provisioning examples, as a resumable Python tool.

Core design goals:
- State-driven and resumable
- Every loop device and mount released, even on failure
- Thin wrappers around bootc, podman and the disk tools
- Centralized logging
"""

__all__ = []
