"""Pure functions: geodesy, AIS code tables and report normalization."""
