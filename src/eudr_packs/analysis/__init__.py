from .risk import BiodiversityImpact, RiskDetermination, RiskLevel, classify, screen_protected_areas

__all__ = [
    "BiodiversityImpact",
    "RiskDetermination",
    "RiskLevel",
    "classify",
    "screen_protected_areas",
]
