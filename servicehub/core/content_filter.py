"""
Chat content filter - keeps conversations on the monitored channel.

Detects personal contact details (phone numbers, emails, external links)
and redacts them with fixed placeholders before a message is stored.
Phrases that suggest moving the conversation elsewhere are flagged but
never redacted.

Rules run in a fixed order (phone -> email -> link -> contact_attempt).
Each pattern is a stateless match-all/replace-all over the output of the
previous step, so a span swallowed by an earlier rule cannot be matched
again by a later one.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

logger = logging.getLogger(__name__)


REASON_PHONE = "phone"
REASON_EMAIL = "email"
REASON_LINK = "link"
REASON_CONTACT_ATTEMPT = "contact_attempt"

PHONE_PLACEHOLDER = "[number hidden]"
EMAIL_PLACEHOLDER = "[email hidden]"
LINK_PLACEHOLDER = "[link removed]"

LINK_TLDS = ("com", "it", "org", "net", "io", "app", "co", "info", "biz", "eu")


@dataclass(frozen=True)
class RedactionRule:
    """One detection category: its patterns and the placeholder they share."""

    reason: str
    patterns: tuple[re.Pattern, ...]
    placeholder: str


# Order matters: each rule sees the text already sanitized by the previous ones
REDACTION_RULES: tuple[RedactionRule, ...] = (
    RedactionRule(
        reason=REASON_PHONE,
        patterns=(
            # International prefix with grouped digits
            re.compile(r"(?:\+?\d{1,4}[\s.\-]?)?\(?\d{2,4}\)?[\s.\-]?\d{3,4}[\s.\-]?\d{3,4}"),
            # 3-3-4 grouping
            re.compile(r"\b\d{3}[\s.\-]?\d{3}[\s.\-]?\d{4}\b"),
            # 2-4-4 grouping (Italian landlines)
            re.compile(r"\b\d{2}[\s.\-]?\d{4}[\s.\-]?\d{4}\b"),
            # Bare digit runs
            re.compile(r"\b\d{10,12}\b"),
        ),
        placeholder=PHONE_PLACEHOLDER,
    ),
    RedactionRule(
        reason=REASON_EMAIL,
        patterns=(
            # Lookbehind pins the start to the beginning of a run
            re.compile(
                r"(?<![a-zA-Z0-9._%+\-])[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}",
                re.IGNORECASE,
            ),
        ),
        placeholder=EMAIL_PLACEHOLDER,
    ),
    RedactionRule(
        reason=REASON_LINK,
        patterns=(
            re.compile(r"https?://\S+", re.IGNORECASE),
            re.compile(r"www\.\S+", re.IGNORECASE),
            re.compile(
                r"(?<![a-zA-Z0-9\-])[a-zA-Z0-9\-]+\.(?:" + "|".join(LINK_TLDS) + r")\b\S*",
                re.IGNORECASE,
            ),
        ),
        placeholder=LINK_PLACEHOLDER,
    ),
)

# Phrases suggesting an attempt to move the conversation off-platform
CONTACT_PHRASES: tuple[re.Pattern, ...] = tuple(
    re.compile(phrase, re.IGNORECASE)
    for phrase in (
        r"chiamami",
        r"contattami",
        r"scrivimi su",
        r"whatsapp",
        r"telegram",
        r"messenger",
        r"instagram",
        r"facebook",
        r"il mio numero",
        r"la mia mail",
        r"la mia email",
    )
)

# User-facing category names per locale, in display order
_CATEGORY_LABELS: dict[str, dict[str, str]] = {
    "it": {
        REASON_PHONE: "numeri di telefono",
        REASON_EMAIL: "indirizzi email",
        REASON_LINK: "link esterni",
    },
    "en": {
        REASON_PHONE: "phone numbers",
        REASON_EMAIL: "email addresses",
        REASON_LINK: "external links",
    },
}

_BLOCKED_TEMPLATES: dict[str, str] = {
    "it": (
        "Per la tua sicurezza, {categories} sono stati nascosti. "
        "Utilizza solo la chat interna per comunicare."
    ),
    "en": (
        "For your safety, {categories} have been hidden. "
        "Please use only the in-app chat to communicate."
    ),
}

_CONTACT_ATTEMPT_WARNINGS: dict[str, str] = {
    "it": (
        "Ricorda: per la tua sicurezza tutte le comunicazioni devono "
        "avvenire tramite la chat interna."
    ),
    "en": (
        "Reminder: for your safety all communication must happen "
        "through the in-app chat."
    ),
}

DEFAULT_LANGUAGE = "it"


@dataclass
class ContentFilterResult:
    """Result of filtering a single chat message."""

    is_blocked: bool
    sanitized_content: str
    original_content: str
    # Ordered, each tag at most once
    blocked_reasons: list[str] = field(default_factory=list)


def _apply_rule(text: str, rule: RedactionRule) -> tuple[str, bool]:
    """Run every pattern of a rule over the working text."""
    matched = False
    for pattern in rule.patterns:
        text, count = pattern.subn(rule.placeholder, text)
        if count:
            matched = True
    return text, matched


def filter_message_content(content: str) -> ContentFilterResult:
    """
    Redact contact details from a chat message.

    Args:
        content: Raw message text (any length, may be empty)

    Returns:
        ContentFilterResult with the sanitized text and the detected reasons.
        is_blocked is True only if something was redacted; a circumvention
        phrase on its own is reported but leaves the text untouched.
    """
    reasons: list[str] = []
    sanitized = content

    for rule in REDACTION_RULES:
        sanitized, matched = _apply_rule(sanitized, rule)
        if matched and rule.reason not in reasons:
            reasons.append(rule.reason)

    is_blocked = bool(reasons)

    if any(pattern.search(sanitized) for pattern in CONTACT_PHRASES):
        reasons.append(REASON_CONTACT_ATTEMPT)

    if reasons:
        # Never log message content, only the outcome
        logger.debug(f"Message filtered: blocked={is_blocked}, reasons={reasons}")

    return ContentFilterResult(
        is_blocked=is_blocked,
        sanitized_content=sanitized,
        original_content=content,
        blocked_reasons=reasons,
    )


def get_blocked_message(reasons: Iterable[str], language: str = DEFAULT_LANGUAGE) -> str:
    """
    Build the notice shown to the sender when parts of a message were hidden.

    contact_attempt is advisory and never mentioned here.

    Returns:
        Localized sentence, or "" when no redaction category is present
    """
    reasons = set(reasons)
    labels = _CATEGORY_LABELS.get(language, _CATEGORY_LABELS[DEFAULT_LANGUAGE])
    template = _BLOCKED_TEMPLATES.get(language, _BLOCKED_TEMPLATES[DEFAULT_LANGUAGE])

    categories = [label for reason, label in labels.items() if reason in reasons]
    if not categories:
        return ""

    return template.format(categories=", ".join(categories))


def get_contact_attempt_warning(
    reasons: Iterable[str], language: str = DEFAULT_LANGUAGE
) -> str:
    """Advisory reminder for messages that only mention off-platform contact."""
    reasons = set(reasons)
    if REASON_CONTACT_ATTEMPT not in reasons:
        return ""
    if reasons & {REASON_PHONE, REASON_EMAIL, REASON_LINK}:
        # The blocked-message notice already covers it
        return ""
    return _CONTACT_ATTEMPT_WARNINGS.get(
        language, _CONTACT_ATTEMPT_WARNINGS[DEFAULT_LANGUAGE]
    )
