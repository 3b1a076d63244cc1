"""Field rules shared by the example endpoints."""

from neacore.validation import RuleSet, field

GLOBAL_RULES: RuleSet = [
    field("name").is_string().length(min=3, max=30).sanitize(),
    field("email").is_email().length(min=5, max=50).sanitize(),
]
