"""
Consent form field rules.

The form itself is stored as an opaque document; only the fields below are
checked before it is accepted.
"""

from ...errors import ValidationFailed
from ...models import ConsentType

COMMON_REQUIRED_FIELDS = (
    "firstName",
    "lastName",
    "birthDate",
    "fiscalCode",
    "phone",
    "isAdult",
    "consentInformedTreatment",
    "consentDataProcessing",
)

REQUIRED_FIELDS = {
    ConsentType.TATUAGGIO: COMMON_REQUIRED_FIELDS + ("tattooDescription",),
    ConsentType.PIERCING: COMMON_REQUIRED_FIELDS + ("piercingType",),
    ConsentType.TRUCCO_PERMANENTE: COMMON_REQUIRED_FIELDS + ("treatmentArea",),
}

# Checkbox fields; stored as real booleans whatever the form sent
BOOLEAN_FIELDS = (
    "isAdult",
    "hasAllergies",
    "hasHepatitis",
    "hasHiv",
    "hasDiabetes",
    "hasHeartProblems",
    "hasBloodDisorders",
    "isPregnant",
    "isBreastfeeding",
    "takesAnticoagulants",
    "hasKeloidTendency",
    "hasMetalAllergies",
    "hasOtherConditions",
    "consentInformedTreatment",
    "consentDataProcessing",
    "consentPhotos",
)

_TRUE_STRINGS = {"true", "1", "on", "yes", "si", "sì"}


def as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def consent_type_from_slug(slug: str) -> ConsentType:
    """'trucco-permanente' -> ConsentType.TRUCCO_PERMANENTE"""
    try:
        return ConsentType(slug.strip().lower().replace("-", "_"))
    except ValueError as e:
        raise ValidationFailed("Tipo di consenso non valido", [slug]) from e
