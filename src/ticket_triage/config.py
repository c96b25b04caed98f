"""
src/ticket_triage/config.py

Shared enums and defaults for the triage agent. Environment lookups live here so
the rest of the package reads plain module constants.
"""


import os
from enum import Enum
from typing import Dict, Optional


class TicketCategory(str, Enum):

    MAINTENANCE = "MAINTENANCE"
    BILLING = "BILLING"
    COMMUNICATION = "COMMUNICATION"
    OPERATIONS = "OPERATIONS"
    OTHER = "OTHER"

class TicketPriority(str, Enum):

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

class MessageDirection(str, Enum):

    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"

class MessageChannel(str, Enum):

    EMAIL = "EMAIL"
    WHATSAPP = "WHATSAPP"

class TenantEmotion(str, Enum):

    CALM = "CALM"
    FRUSTRATED = "FRUSTRATED"
    URGENT = "URGENT"
    PANICKED = "PANICKED"

class ConversationRole(str, Enum):

    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"

class AgentEventType(str, Enum):

    TRIAGE_COMPLETED = "TRIAGE_COMPLETED"
    TOOL_EXECUTED = "TOOL_EXECUTED"


# Reasoning engine
DEFAULT_MODEL: str = os.getenv("OPENAI_RESPONSES_MODEL", "gpt-4.1-mini")
DEFAULT_TEMPERATURE: float = 0.2
DEFAULT_MAX_OUTPUT_TOKENS: int = 800
OPENAI_MAX_RETRIES: int = 2
TICKET_ID_METADATA_KEY: str = "ticket_id"

# Orchestrator loop
MAX_TOOL_ROUNDS: int = 5                    # Hard cap on engine turns that may request tools
CONVERSATION_WINDOW: int = 6                # Trailing messages rendered into the prompt

# Contractor search
DEFAULT_CONTRACTOR_LIMIT: int = 3
MAX_CONTRACTOR_RESULTS: int = 5
DEFAULT_EXTERNAL_LOCATION: str = "Saint John, NB, Canada"
GOOGLE_PLACES_ENDPOINT: str = "https://maps.googleapis.com/maps/api/place/textsearch/json"
PLACES_TIMEOUT_SECONDS: float = 10.0

# Ticket category -> contractor trade used when filtering the internal directory
CATEGORY_TRADES: Dict[str, str] = {
    "MAINTENANCE": "GENERAL",
    "BILLING": "OTHER",
    "COMMUNICATION": "OTHER",
    "OPERATIONS": "GENERAL",
    "OTHER": "OTHER",
}


def openai_api_key() -> Optional[str]:

    return os.getenv("OPENAI_API_KEY")

def openai_base_url() -> str:
    """Explicit base URL first, then the legacy variable, then the public API."""

    return os.getenv("OPENAI_BASE_URL") or os.getenv("OPENAI_API_BASE") or "https://api.openai.com/v1"

def places_api_key() -> Optional[str]:

    return os.getenv("GOOGLE_PLACES_API_KEY")

def contractor_directory_path() -> Optional[str]:

    return os.getenv("CONTRACTOR_DIRECTORY_PATH")

def log_level() -> str:

    return os.getenv("TRIAGE_LOG_LEVEL", "INFO").upper()

# EOF
