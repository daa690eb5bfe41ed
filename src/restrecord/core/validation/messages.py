"""Validation message templates and locales.

Templates use ``${name}`` placeholders filled from the rule's context, which
always includes ``attribute`` and ``value``.

Usage:
    messages = get_messages()
    messages.get("between", {"min": 1, "max": 5})  # "Must be between 1 and 5"

    messages.register("pt-br", PT_BR)
    messages.set_locale("pt-br")
"""

from __future__ import annotations

from collections.abc import Mapping
from string import Template
from typing import Any

DEFAULT_LOCALE = "en-us"

EN_US: dict[str, str] = {
    "after": "Must be after ${date}",
    "alpha": "Can only use letters",
    "alphanumeric": "Must be alphanumeric",
    "array": "Must be an array",
    "ascii": "Must be ASCII",
    "before": "Must be before ${date}",
    "between": "Must be between ${min} and ${max}",
    "between_inclusive": "Must be between ${min} and ${max}, inclusive",
    "boolean": "Must be true or false",
    "defined": "Required",
    "email": "Must be a valid email address",
    "empty": "Must be empty",
    "equals": "Must be equal to ${other}",
    "gt": "Must be greater than ${min}",
    "gte": "Must be greater than or equal to ${min}",
    "integer": "Must be an integer",
    "json": "Must be a valid JSON",
    "length": "Must have a length of at least ${min}",
    "length_between": "Must have a length between ${min} and ${max}",
    "lt": "Must be less than ${max}",
    "lte": "Must be less than or equal to ${max}",
    "match": 'Must match "${pattern}"',
    "negative": "Must be a negative number",
    "not": "Can not be ${value}",
    "number": "Must be a number",
    "object": "Must be an object",
    "positive": "Must be a positive number",
    "required": "Required",
    "same": 'Must have the same value as "${other}"',
    "string": "Must be a string",
    "url": "Must be a valid URL",
    "uuid": "Must be a valid UUID",
}

PT_BR: dict[str, str] = {
    "after": "Deve ser uma data depois de ${date}",
    "alpha": "Deve conter somente letras",
    "alphanumeric": "Deve conter somente letras e números",
    "array": "Deve ser um array",
    "ascii": "Deve ser ASCII",
    "before": "Deve ser uma data antes de ${date}",
    "between": "Deve estar entre ${min} e ${max}",
    "between_inclusive": "Deve estar entre ${min} e ${max}, inclusive",
    "boolean": "Deve ser verdadeiro ou falso",
    "defined": "Campo obrigatório",
    "email": "Deve ser um endereço de email válido",
    "empty": "Deve ser vazio",
    "equals": "Deve ser igual a ${other}",
    "gt": "Deve ser maior que ${min}",
    "gte": "Deve ser maior ou igual a ${min}",
    "integer": "Deve ser um inteiro",
    "json": "Deve ser um JSON válido",
    "length": "Deve ter o tamanho de pelo menos ${min}",
    "length_between": "Deve ter o tamanho entre ${min} e ${max}",
    "lt": "Deve ser menor que ${max}",
    "lte": "Deve ser menor ou igual a ${max}",
    "match": 'Deve ter o formato "${pattern}"',
    "negative": "Deve ser um número negativo",
    "not": "Não pode ser ${value}",
    "number": "Deve ser um número",
    "object": "Deve ser um object",
    "positive": "Deve ser um número positivo",
    "required": "Campo obrigatório",
    "same": 'Deve ser igual a "${other}"',
    "string": "Deve ser uma string",
    "url": "Deve ser uma URL válida",
    "uuid": "Deve ser um UUID válido",
}


class Messages:
    """Locale-aware store of message templates.

    Lookups fall back to the default locale when the active locale has no
    template for a name, and to the name itself when neither does.
    """

    def __init__(self) -> None:
        self._locales: dict[str, dict[str, Template]] = {}
        self._locale = DEFAULT_LOCALE
        self.register(DEFAULT_LOCALE, EN_US)

    @property
    def locale(self) -> str:
        return self._locale

    def register(self, locale: str, messages: Mapping[str, str]) -> None:
        """Add or extend the templates of a locale."""
        bucket = self._locales.setdefault(locale.lower(), {})
        for name, template in messages.items():
            bucket[name] = Template(template)

    def set_locale(self, locale: str) -> None:
        """Switch the active locale.

        Raises:
            KeyError: If the locale has not been registered.
        """
        if locale.lower() not in self._locales:
            raise KeyError(f"Locale '{locale}' is not registered")
        self._locale = locale.lower()

    def set(self, name: str, template: str, locale: str | None = None) -> None:
        """Replace a single template on a locale (active locale by default)."""
        self.register(locale or self._locale, {name: template})

    def get(self, name: str, data: Mapping[str, Any] | None = None) -> str:
        """Format a message by name."""
        template = self._locales[self._locale].get(name) or self._locales[
            DEFAULT_LOCALE
        ].get(name)
        if template is None:
            return name
        return template.safe_substitute(data or {})


_messages = Messages()


def get_messages() -> Messages:
    """Access the process-local message store used by built-in rules."""
    return _messages
