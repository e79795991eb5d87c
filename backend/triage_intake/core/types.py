"""Common type definitions for the triage intake core."""
from typing import Any, Dict, Literal

# Type aliases for clarity
Role = Literal["patient", "assistant"]
PendingField = Literal["name", "age", "gender", "symptoms"]
TransportMessage = Dict[str, Any]  # {"type": "transcript", "role": "user", ...}
