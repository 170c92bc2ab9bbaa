"""
Coordinate-based filling of the static plan application and BCIF templates,
plus the saved coordinate mappings used to calibrate them.
"""
