"""Centralized constants for Helm AI system configuration."""


# ===== SAFETY POLICY =====
class SafetyConstants:
    HIGH_RISK_THRESHOLD = 80
    CRITICAL_RISK_THRESHOLD = 95
    HIGH_COST_THRESHOLD_USD = 1000.0
    POLICY_VERSION = "1.0.0"


# ===== HUMAN OVERRIDE =====
class OverrideConstants:
    TOKEN_PREFIX = "OVERRIDE"
    VALIDITY_MINUTES = 60
    RANDOM_SUFFIX_LENGTH = 9
    RANDOM_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"


# ===== REASONING SERVICE =====
class ReasoningConstants:
    DEFAULT_API_URL = "https://api.x.ai/v1/chat/completions"
    DEFAULT_MODEL = "grok-4-latest"
    TEMPERATURE = 0.1
    MAX_TOKENS = 2000
    TIMEOUT_SECONDS = 30.0

    # Offline fallback
    FALLBACK_RISK_SCORE = 75
    FALLBACK_URGENCY_SCORE = 25


# ===== AUDIT =====
class AuditConstants:
    QUEUE_SIZE = 10000
    FLUSH_TIMEOUT_SECONDS = 5.0
    QUEUE_GET_TIMEOUT = 1.0
    SIGNATURE_ALGORITHM = "sha256"
    DEFAULT_SIGNING_KEY = "default-secret-change-in-production"
    DEFAULT_QUERY_LIMIT = 100


# ===== ANALYTICS =====
class AnalyticsConstants:
    DECISION_FEED_HIGH_RISK = 70
    HEATMAP_WINDOW_HOURS = 6
    HEATMAP_HIGH_RISK = 70
    HEATMAP_MEDIUM_RISK = 40
    DAILY_BUDGET_USD = 10.0
    BRAIN_REPORT_REVIEW_HOURS = 24
    MOAT_WEIGHTS = {"high": 3, "medium": 2, "low": 1}
