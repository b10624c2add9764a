"""
Account and process lifecycle.

- accounts: provisioning hooks called by the account-creation authority
- shutdown: once-only graceful shutdown across termination signals
"""

from .accounts import AccountCreationContext, LifecycleOrchestrator
from .shutdown import ShutdownCoordinator, TERMINATION_SIGNALS

__all__ = [
    'AccountCreationContext',
    'LifecycleOrchestrator',
    'ShutdownCoordinator',
    'TERMINATION_SIGNALS',
]
