"""Static location data."""

from typing import NamedTuple, Optional, Tuple


class ReferenceCity(NamedTuple):
    name: str
    latitude: float
    longitude: float
    state: str
    baseline_aqi: Optional[int] = None
    aliases: Tuple[str, ...] = ()


# Baselines are typical Indian AQI levels used only for synthetic readings.
REFERENCE_CITIES = (
    ReferenceCity("New Delhi", 28.6139, 77.2090, "Delhi", 180, ("Delhi",)),
    ReferenceCity("Mumbai", 19.0760, 72.8777, "Maharashtra", 120),
    ReferenceCity("Bangalore", 12.9716, 77.5946, "Karnataka", 100, ("Bengaluru",)),
    ReferenceCity("Chennai", 13.0827, 80.2707, "Tamil Nadu", 110),
    ReferenceCity("Kolkata", 22.5726, 88.3639, "West Bengal", 150),
    ReferenceCity("Hyderabad", 17.3850, 78.4867, "Telangana", 130),
    ReferenceCity("Pune", 18.5204, 73.8567, "Maharashtra", 115),
    ReferenceCity("Ahmedabad", 23.0225, 72.5714, "Gujarat", 125),
)

# Cities accepted by name in forecast queries
KNOWN_CITIES = REFERENCE_CITIES + (
    ReferenceCity("Jaipur", 26.9124, 75.7873, "Rajasthan"),
    ReferenceCity("Surat", 21.1702, 72.8311, "Gujarat"),
    ReferenceCity("Lucknow", 26.8467, 80.9462, "Uttar Pradesh"),
    ReferenceCity("Kanpur", 26.4499, 80.3319, "Uttar Pradesh"),
    ReferenceCity("Nagpur", 21.1458, 79.0882, "Maharashtra"),
    ReferenceCity("Indore", 22.7196, 75.8577, "Madhya Pradesh"),
    ReferenceCity("Thane", 19.2183, 72.9781, "Maharashtra"),
    ReferenceCity("Bhopal", 23.2599, 77.4126, "Madhya Pradesh"),
    ReferenceCity("Visakhapatnam", 17.6868, 83.2185, "Andhra Pradesh"),
    ReferenceCity("Pimpri-Chinchwad", 18.6298, 73.7997, "Maharashtra"),
)
