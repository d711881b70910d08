"""
Repository layer for chathub.

All SQL lives here and ONLY here. No database access outside this module.
"""

from chathub.repos.conversation_repo import ConversationRepo
from chathub.repos.usage_repo import UsageRepo
from chathub.repos.user_repo import UserRepo

__all__ = [
    "UserRepo",
    "UsageRepo",
    "ConversationRepo",
]
