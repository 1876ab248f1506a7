"""Closed choice sets offered to the user."""

# value -> button label
PLATFORMS: dict[str, str] = {
    "LinkedIn": "LinkedIn",
    "Instagram": "Instagram",
    "Facebook": "Facebook",
    "X": "X (Twitter)",
}

TONES: dict[str, str] = {
    "Professional": "Professional",
    "Enthusiastic": "Enthusiastic",
    "Luxury": "Luxury",
    "Technical": "Technical",
}

SERVICES: dict[str, str] = {
    "OEM": "OEM / Private Label",
    "Custom": "Custom Branding",
    "Bulk": "Bulk Manufacturing",
    "Fabric": "Premium Fabric",
}

# Callback categories
PLATFORM = "platform"
TONE = "tone"
SERVICE = "service"
CONTROL = "control"

# Control actions
DONE_SERVICES = "done_services"
SKIP_CONTEXT = "skip_context"
