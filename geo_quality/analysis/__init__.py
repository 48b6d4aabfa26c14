# ==============================================
# ANALYSIS: Field metrics and readiness flags
# ==============================================
#
# Modules:
# --------
# - sampler.py           → fixed Population per run
# - field_stats.py       → FieldQualityReport (per-field metrics)
# - field_statistics.py  → FieldStatisticsComputer (fullness, types, entropy)
# - decision.py          → DatasetProperties, DatasetQualityState
# - classifier.py        → PropertyClassifier (connected/enriched/published)
#
# ==============================================
