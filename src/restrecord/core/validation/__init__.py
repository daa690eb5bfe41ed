"""Validation: concurrent engine, chainable rules and message locales.

Usage:
    from restrecord.core.validation import rules

    class User(Record):
        def validation(self):
            return {"email": [rules.required, rules.email]}
"""

from restrecord.core.validation import rules
from restrecord.core.validation.engine import ValidationEngine, Validatable, normalize
from restrecord.core.validation.messages import EN_US, PT_BR, Messages, get_messages
from restrecord.core.validation.rules import ValidationRule, rule

__all__ = [
    "ValidationEngine",
    "Validatable",
    "normalize",
    "ValidationRule",
    "rule",
    "rules",
    "Messages",
    "get_messages",
    "EN_US",
    "PT_BR",
]
