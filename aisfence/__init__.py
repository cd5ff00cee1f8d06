"""AisFence — geofenced AIS targets around your own vessel, as Signal K deltas."""
