# ==============================================
# VALIDATION: Geometry structure and free-text geometry
# ==============================================
#
# Modules:
# --------
# - geometry.py        → GeoJSON schema validation of geometry fields
# - wkt.py             → WKT detection in string fields
# - schemas/geojson/   → GeoJSON structural schema documents (draft-04)
#
# ==============================================
