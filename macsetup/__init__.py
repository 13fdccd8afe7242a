"""macsetup: provisioning and hardening for Apple Silicon Macs.

Core design goals:
- Idempotent steps, safe to re-run
- Fail-fast preconditions before any change
- Best-effort settings with an honest end-of-run summary
- Centralized logging to the user's Desktop
"""

__all__ = []
