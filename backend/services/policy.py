"""
Reply policy for the guest assistant.

Holds the localized fixed replies (price hand-off, fact shortcuts, no-context
and failure messages) and the checks that decide when they replace retrieval
or a generated answer.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config import RESERVATION_PHONE, RESERVATION_EMAIL
from models.api import Source


MODEL_NO_PRICE = "policy_no_price"
MODEL_FACT_SHORTCUT = "policy_fact_shortcut"
MODEL_NO_CONTEXT = "no_context"
MODEL_ERROR = "error"
MODEL_NONE = "none"

_PRICE_PATTERNS = [
    re.compile(pattern) for pattern in (
        r"\bfiyat\w*", r"\b[uü]cret(?!siz)\w*", r"\bne kadar\b", r"\btl\b", r"\beuro\b", r"€",
        r"\bprice\w*", r"\bcost\w*", r"\brate\b", r"\brates\b", r"\bhow much\b", r"\bquote\b",
        r"\bpreis\w*", r"\bkosten\b", r"\bwie viel\b", r"\bangebot\b",
    )
]
_CURRENCY_SIGN = re.compile(r"[€$£]")
_AMOUNT_WITH_CURRENCY = re.compile(r"\b\d{1,4}(?:[.,]\d{1,2})?\s?(?:eur|euro|tl|usd|gbp)\b", re.IGNORECASE)

_LOCATION_COUNT_PATTERNS = [
    re.compile(r"(kac|kaç).*(otel|lokasyon|konum|tesis|yer|sube|şube)"),
    re.compile(r"(wie viele).*(standort|hotel|haeuser|häuser|objekt).*(gibt|haben)"),
    re.compile(r"(how many).*(hotel|location|propert|site).*(do you have|are there|have)"),
]
_CHECKIN_PATTERNS = [
    re.compile(r"\b(check[\s-]?in|check[\s-]?out)\b"),
    re.compile(r"\b(giris|giriş|çıkış|cikis)\b.*\b(saat\w*|zaman\w*)"),
    re.compile(r"\bwann\b.*\b(anreise|abreise|uhr)\b"),
]
_PET_PATTERN = re.compile(r"\b(evcil|pet|pets|dog|dogs|cat|cats|haustier|haustiere|hund|katze)\b")


@dataclass
class PolicyReply:
    """A fixed reply that short-circuits retrieval and generation."""
    answer: str
    model: str
    fact_id: Optional[str] = None
    sources: List[Source] = field(default_factory=list)


def _contact() -> str:
    return f"{RESERVATION_PHONE}, {RESERVATION_EMAIL}"


def _localized(messages: Dict[str, str], locale: str) -> str:
    return messages.get(locale, messages["en"])


def no_price_message(locale: str) -> str:
    return _localized({
        "en": f"We do not provide pricing in chat. Our reservation team can assist you directly: {_contact()}.",
        "de": f"Preisinformationen geben wir im Chat nicht an. Unser Reservierungsteam hilft Ihnen direkt weiter: {_contact()}.",
        "tr": f"Chat üzerinden fiyat bilgisi paylaşmıyoruz. Rezervasyon ekibimiz size doğrudan yardımcı olur: {_contact()}.",
    }, locale)


def no_context_message(locale: str) -> str:
    return _localized({
        "en": f"I do not have reliable information on this yet. Please contact our team: {_contact()}.",
        "de": f"Dazu habe ich aktuell keine verlässlichen Informationen. Bitte kontaktieren Sie unser Team: {_contact()}.",
        "tr": f"Bu konuda şu an güvenilir bir bilgi bulamadım. Lütfen ekibimizle iletişime geçin: {_contact()}.",
    }, locale)


def insufficient_context_message(locale: str) -> str:
    return _localized({
        "en": "I could not find enough information to answer that.",
        "de": "Ich habe nicht genug Informationen gefunden, um das zu beantworten.",
        "tr": "Bunu yanıtlamak için yeterli bilgi bulamadım.",
    }, locale)


def generation_failed_message(locale: str) -> str:
    return _localized({
        "en": "Sorry, I could not generate an answer right now. Please try again.",
        "de": "Entschuldigung, die Antwort konnte gerade nicht erstellt werden. Bitte versuchen Sie es erneut.",
        "tr": "Üzgünüz, şu anda bir yanıt oluşturulamadı. Lütfen tekrar deneyin.",
    }, locale)


def location_count_source(locale: str) -> Source:
    """Citation for the fixed location-count reply."""
    return Source(
        source_id=f"forai:qa:gen-locations-count:{locale}",
        title=f"forai.qa.gen-locations-count ({locale})",
        locale=locale,
        url="/contact",
        score=1.0,
    )


def location_count_message(locale: str) -> str:
    return _localized({
        "en": "We currently have 3 locations: Stuttgart Flamingo, Stuttgart Europaplatz, and Hildesheim.",
        "de": "Wir haben insgesamt 3 Standorte: Stuttgart Flamingo, Stuttgart Europaplatz und Hildesheim.",
        "tr": "Toplam 3 lokasyonumuz var: Stuttgart Flamingo, Stuttgart Europaplatz ve Hildesheim.",
    }, locale)


def checkin_checkout_message(locale: str) -> str:
    return _localized({
        "en": "Check-in starts at 14:00 and check-out is until 12:00.",
        "de": "Check-in ist ab 14:00 Uhr, Check-out bis 12:00 Uhr.",
        "tr": "Check-in 14:00'ten itibaren, check-out 12:00'ye kadar.",
    }, locale)


def pet_policy_message(locale: str) -> str:
    return _localized({
        "en": f"Pet requests are reviewed case by case depending on apartment and availability. Please contact our reservation team before booking: {_contact()}.",
        "de": f"Haustiere werden je nach Apartment und Verfügbarkeit im Einzelfall geprüft. Bitte kontaktieren Sie vorab unser Reservierungsteam: {_contact()}.",
        "tr": f"Evcil hayvan talepleri daire ve müsaitlik durumuna göre değerlendirilir. Lütfen rezervasyon öncesi ekibimizle iletişime geçin: {_contact()}.",
    }, locale)


def is_price_query(question: str) -> bool:
    q = str(question or "").lower()
    return bool(q) and any(pattern.search(q) for pattern in _PRICE_PATTERNS)


def contains_price_like_value(text: str) -> bool:
    """True when text shows a currency sign or an amount followed by a currency."""
    value = str(text or "")
    return bool(_CURRENCY_SIGN.search(value) or _AMOUNT_WITH_CURRENCY.search(value))


def is_location_count_query(question: str) -> bool:
    q = str(question or "").lower()
    return any(pattern.search(q) for pattern in _LOCATION_COUNT_PATTERNS)


def is_checkin_checkout_query(question: str) -> bool:
    q = str(question or "").lower()
    return any(pattern.search(q) for pattern in _CHECKIN_PATTERNS)


def is_pet_policy_query(question: str) -> bool:
    return bool(_PET_PATTERN.search(str(question or "").lower()))


def shortcut_reply(question: str, locale: str) -> Optional[PolicyReply]:
    """
    Fixed reply for questions that must not go through retrieval.

    Price questions are checked first so a price question about pets still
    gets the reservation hand-off.
    """
    if is_price_query(question):
        return PolicyReply(no_price_message(locale), MODEL_NO_PRICE)
    if is_location_count_query(question):
        return PolicyReply(
            location_count_message(locale),
            MODEL_FACT_SHORTCUT,
            fact_id="locations-count",
            sources=[location_count_source(locale)],
        )
    if is_checkin_checkout_query(question):
        return PolicyReply(checkin_checkout_message(locale), MODEL_FACT_SHORTCUT, fact_id="checkin-checkout")
    if is_pet_policy_query(question):
        return PolicyReply(pet_policy_message(locale), MODEL_FACT_SHORTCUT, fact_id="pet-policy")
    return None
