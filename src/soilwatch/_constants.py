"""Internal constants shared across the library."""

DEFAULT_DATABASE_URL = "https://soilbitchina-default-rtdb.firebaseio.com"

ADMIN_ROOT = "Admin"
USERS_ROOT = "Users"

MARKER_COLOR_DATA = "red"
MARKER_COLOR_NO_DATA = "grey"
BAR_COLOR_IN_RANGE = "darkgreen"
BAR_COLOR_OUT_OF_RANGE = "red"

NO_DATA_TEXT = "No data available yet."
ACKNOWLEDGE_LABEL = "Done"
ADVISORY_NOTE = (
    "Note: For parameters like NPK, EC, and pH, changes may take time or days to appear. "
    "If an action is performed, please wait before checking results."
)

#: Rows at or beyond this index are collapsed until the panel is expanded.
VISIBLE_ROWS = 4

# ------------------------------------------------------------------
# Normal ranges  (parameter name → (min, max))
# ------------------------------------------------------------------

RANGES: dict[str, tuple[float, float]] = {
    "pH": (6.00, 6.50),
    "Moisture": (30.00, 50.00),
    "Temperature": (18.00, 24.00),
    "Salinity": (0.50, 2.00),
    "EC": (0.50, 2.00),
    "Nitrogen": (80.00, 120.00),
    "Phosphorus": (20.00, 40.00),
    "Potassium": (80.00, 120.00),
}

# ------------------------------------------------------------------
# Advisory texts  (parameter name → {"low": ..., "high": ...})
# ------------------------------------------------------------------

MESSAGES: dict[str, dict[str, str]] = {
    "pH": {
        "low": "Soil pH is too low — acidic soil reduces nutrient availability and stunts growth.",
        "high": "Soil pH is too high — alkaline soil locks nutrients and weakens plants.",
    },
    "Moisture": {
        "low": "Soil is too dry — roots can't absorb enough water or nutrients.",
        "high": "Soil is waterlogged — risk of root rot and poor plant health.",
    },
    "Temperature": {
        "low": "Soil is too cold — growth slows and flowering is delayed.",
        "high": "Soil is too hot — plants are stressed and yield may drop.",
    },
    "Salinity": {
        "low": "Soil salinity is too low — may cause nutrient imbalance.",
        "high": "Soil salinity is too high — roots are damaged and leaves may burn.",
    },
    "EC": {
        "low": "EC is too low — may cause nutrient imbalance.",
        "high": "EC is too high — roots are damaged and leaves may burn.",
    },
    "Nitrogen": {
        "low": "Nitrogen is too low — leaves turn yellow, growth slows.",
        "high": "Nitrogen is too high — excess leaves form, flowering is delayed.",
    },
    "Phosphorus": {
        "low": "Phosphorus is too low — weak roots and poor flowering.",
        "high": "Phosphorus is too high — micronutrient uptake is blocked, growth suffers.",
    },
    "Potassium": {
        "low": "Potassium is too low — plants are weak, bean quality drops.",
        "high": "Potassium is too high — calcium and magnesium uptake is disrupted.",
    },
}


def admin_path(identity: str) -> str:
    return f"{ADMIN_ROOT}/{identity}"


def acknowledgment_path(tenant: str, node: str, packet_key: str, ack_key: str) -> str:
    """Store path recording an acknowledgment on a specific packet."""
    return f"{USERS_ROOT}/{tenant}/Farm/Nodes/{node}/Packets/{packet_key}/{ack_key}"
