"""
Pydantic models for chathub.

All data shapes defined here. No imports from db, repos, or routes.
"""

from chathub.models.ai import (
    BotInfo,
    ChatRequest,
    ChatResponse,
    ImageRequest,
    ImageResponse,
    SpeechRequest,
    TranscriptResponse,
)
from chathub.models.auth import (
    AuthResponse,
    GoogleSignInRequest,
    LoginRequest,
    MeResponse,
    SetPremiumRequest,
    SetPremiumResponse,
    SignupRequest,
    UpgradeResponse,
)
from chathub.models.conversation import (
    Conversation,
    ConversationSummary,
    CreateConversationRequest,
    Message,
)
from chathub.models.usage import Reservation, UsageEntry, UsageRecord, UsageResponse
from chathub.models.user import User, UserPublic

__all__ = [
    # User models
    "User",
    "UserPublic",
    # Auth models
    "SignupRequest",
    "LoginRequest",
    "GoogleSignInRequest",
    "AuthResponse",
    "MeResponse",
    "UpgradeResponse",
    "SetPremiumRequest",
    "SetPremiumResponse",
    # Usage models
    "UsageRecord",
    "Reservation",
    "UsageEntry",
    "UsageResponse",
    # Conversation models
    "Conversation",
    "Message",
    "CreateConversationRequest",
    "ConversationSummary",
    # AI models
    "ChatRequest",
    "ChatResponse",
    "ImageRequest",
    "ImageResponse",
    "SpeechRequest",
    "TranscriptResponse",
    "BotInfo",
]
