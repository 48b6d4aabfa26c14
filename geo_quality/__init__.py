# ==============================================
# geo-quality: Dataset Quality Scoring
# ==============================================
#
# Package Structure:
#
# geo_quality/
# ├── normalization/    # Declared field types, roles, text folding
# ├── analysis/         # Sampling, per-field statistics, readiness flags
# ├── validation/       # GeoJSON structure and WKT detection
# ├── address/          # Address features, completeness, hierarchy resolution
# ├── storage/          # Document store interface (MongoDB + in-memory)
# ├── persistence/      # Progress / error sink
# ├── config.py         # Configuration management
# ├── context.py        # Immutable per-process analysis context
# ├── analyzer.py       # Orchestrator: one dataset in, one state out
# └── cli.py            # Command line entry point
#
# ==============================================

__version__ = "0.1.0"
