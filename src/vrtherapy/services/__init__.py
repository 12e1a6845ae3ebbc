"""VR therapy services package."""
