# ==============================================
# ADDRESS: Address detection and administrative hierarchy
# ==============================================
#
# Modules:
# --------
# - registry.py        → canonical regions and municipalities
# - features.py        → address-like text detection (lexicon heuristic)
# - completeness.py    → fullness of the declared address roles
# - hierarchy.py       → single-valued Region/Municipality resolution
#
# ==============================================
