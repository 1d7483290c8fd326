"""
Dermatology knowledge base: static clinical tables behind the recommendation engine.

This is the domain adapter for eczema/dermatitis care:
- Treatment protocols keyed by (condition, severity grade)
- Worded recommendation templates per treatment identifier
- Contraindication and drug-interaction tables
- Evidence database with effect sizes used as base confidence

Every table is built once at import and exposed read-only. Lookups return
``None`` (or an empty list) on a miss; callers decide how to fall back.
"""

from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from dermair.domain.models import EvidenceGrade, SeverityGrade, Urgency


class Condition(str, Enum):
    """Dermatitis variants the situation analysis can name."""

    ATOPIC_DERMATITIS = "atopic_dermatitis"
    CONTACT_DERMATITIS = "contact_dermatitis"
    SEBORRHEIC_DERMATITIS = "seborrheic_dermatitis"


class TreatmentId(str, Enum):
    """Treatment identifiers referenced by protocols."""

    # Mild atopic dermatitis
    TOPICAL_MOISTURIZERS = "topical_moisturizers"
    BARRIER_REPAIR = "barrier_repair"
    TRIGGER_AVOIDANCE = "trigger_avoidance"
    TOPICAL_CORTICOSTEROIDS_LOW = "topical_corticosteroids_low"
    CALCINEURIN_INHIBITORS = "calcineurin_inhibitors"

    # Moderate atopic dermatitis
    INTENSIVE_MOISTURIZING = "intensive_moisturizing"
    MID_POTENCY_STEROIDS = "mid_potency_steroids"
    ANTIHISTAMINES = "antihistamines"
    TOPICAL_IMMUNOMODULATORS = "topical_immunomodulators"
    PHOTOTHERAPY = "phototherapy"
    SYSTEMIC_IMMUNOSUPPRESSANTS = "systemic_immunosuppressants"

    # Severe atopic dermatitis
    SYSTEMIC_THERAPY = "systemic_therapy"
    BIOLOGICS = "biologics"
    INTENSIVE_CARE = "intensive_care"


class TreatmentProtocol(BaseModel):
    """Evidence-graded treatment lines for one (condition, severity) pair."""

    model_config = ConfigDict(frozen=True)

    first_line: tuple[TreatmentId, ...]
    second_line: tuple[TreatmentId, ...] = ()
    # Listed for completeness; the engine only generates first and second line.
    third_line: tuple[TreatmentId, ...] = ()
    monitoring: tuple[str, ...] = ()
    evidence: EvidenceGrade
    sources: tuple[str, ...] = ()
    urgency: Urgency | None = None


class TreatmentTemplate(BaseModel):
    """Fully worded recommendation for a treatment identifier."""

    model_config = ConfigDict(frozen=True)

    recommendation: str
    rationale: str
    timeframe: str
    contraindications: tuple[str, ...] = ()
    monitoring: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()


class EvidenceRecord(BaseModel):
    """Published evidence backing an intervention class."""

    model_config = ConfigDict(frozen=True)

    level: EvidenceGrade
    studies: int = Field(gt=0)
    effect_size: float = Field(ge=0.0, le=1.0)
    source: str


_PROTOCOLS: MappingProxyType[tuple[Condition, SeverityGrade], TreatmentProtocol] = MappingProxyType(
    {
        (Condition.ATOPIC_DERMATITIS, SeverityGrade.MILD): TreatmentProtocol(
            first_line=(
                TreatmentId.TOPICAL_MOISTURIZERS,
                TreatmentId.BARRIER_REPAIR,
                TreatmentId.TRIGGER_AVOIDANCE,
            ),
            second_line=(
                TreatmentId.TOPICAL_CORTICOSTEROIDS_LOW,
                TreatmentId.CALCINEURIN_INHIBITORS,
            ),
            monitoring=("itch_severity", "skin_integrity", "sleep_quality"),
            evidence=EvidenceGrade.GRADE_A,
            sources=("AAD Guidelines 2023", "EADV Consensus 2022"),
        ),
        (Condition.ATOPIC_DERMATITIS, SeverityGrade.MODERATE): TreatmentProtocol(
            first_line=(
                TreatmentId.INTENSIVE_MOISTURIZING,
                TreatmentId.MID_POTENCY_STEROIDS,
                TreatmentId.ANTIHISTAMINES,
            ),
            second_line=(TreatmentId.TOPICAL_IMMUNOMODULATORS, TreatmentId.PHOTOTHERAPY),
            third_line=(TreatmentId.SYSTEMIC_IMMUNOSUPPRESSANTS,),
            monitoring=("lesion_severity", "quality_of_life", "medication_adherence"),
            evidence=EvidenceGrade.GRADE_A,
        ),
        (Condition.ATOPIC_DERMATITIS, SeverityGrade.SEVERE): TreatmentProtocol(
            first_line=(
                TreatmentId.SYSTEMIC_THERAPY,
                TreatmentId.BIOLOGICS,
                TreatmentId.INTENSIVE_CARE,
            ),
            monitoring=("systemic_effects", "infection_risk", "psychological_impact"),
            evidence=EvidenceGrade.GRADE_A,
            urgency=Urgency.HIGH,
        ),
    }
)

_TEMPLATES: MappingProxyType[TreatmentId, TreatmentTemplate] = MappingProxyType(
    {
        TreatmentId.TOPICAL_MOISTURIZERS: TreatmentTemplate(
            recommendation="Apply fragrance-free, ceramide-based moisturizer twice daily",
            rationale="Restores skin barrier function and reduces transepidermal water loss",
            timeframe="Immediate and ongoing",
            contraindications=("known allergies to ingredients",),
            monitoring=("skin hydration", "irritation signs"),
            sources=("AAD Clinical Guidelines 2023", "Cochrane Review on Moisturizers"),
        ),
        TreatmentId.TOPICAL_CORTICOSTEROIDS_LOW: TreatmentTemplate(
            recommendation=(
                "Apply low-potency topical corticosteroid (hydrocortisone 1%) to affected areas"
            ),
            rationale="Reduces inflammation and provides symptomatic relief",
            timeframe="5-7 days, then reassess",
            contraindications=("viral/bacterial infections", "perioral use"),
            monitoring=("symptom improvement", "skin atrophy signs"),
            sources=("NICE Guidelines 2023", "AAD Steroid Guidelines"),
        ),
        TreatmentId.BARRIER_REPAIR: TreatmentTemplate(
            recommendation="Use barrier repair creams containing niacinamide and ceramides",
            rationale="Strengthens compromised skin barrier and prevents flare-ups",
            timeframe="Daily maintenance",
            contraindications=("niacinamide sensitivity",),
            monitoring=("barrier function improvement", "flare frequency"),
            sources=("Journal of Clinical Medicine 2023",),
        ),
        TreatmentId.TRIGGER_AVOIDANCE: TreatmentTemplate(
            recommendation="Avoid identified triggers and maintain trigger diary",
            rationale="Prevents inflammatory cascade initiation",
            timeframe="Ongoing",
            monitoring=("trigger exposure incidents", "symptom correlation"),
            sources=("Allergy Guidelines 2023",),
        ),
        TreatmentId.CALCINEURIN_INHIBITORS: TreatmentTemplate(
            recommendation=(
                "Apply topical calcineurin inhibitor (tacrolimus 0.03% or pimecrolimus 1%) "
                "to sensitive areas such as face and skin folds"
            ),
            rationale="Controls inflammation without steroid-related skin thinning",
            timeframe="Twice daily until clear, then as needed",
            contraindications=("active skin infection", "immunocompromised state"),
            monitoring=("burning sensation", "infection signs"),
            sources=("AAD Clinical Guidelines 2023",),
        ),
        TreatmentId.INTENSIVE_MOISTURIZING: TreatmentTemplate(
            recommendation=(
                "Apply thick emollient at least three times daily and within 3 minutes of bathing"
            ),
            rationale="Heavier occlusion restores hydration in actively inflamed skin",
            timeframe="Immediate and ongoing",
            contraindications=("known allergies to ingredients",),
            monitoring=("skin hydration", "folliculitis signs"),
            sources=("Cochrane Review on Moisturizers", "EADV Consensus 2022"),
        ),
        TreatmentId.MID_POTENCY_STEROIDS: TreatmentTemplate(
            recommendation=(
                "Apply mid-potency topical corticosteroid (e.g. triamcinolone 0.1%) "
                "to affected body areas, avoiding face and folds"
            ),
            rationale="Controls moderate inflammation faster than low-potency options",
            timeframe="Up to 2 weeks, then taper",
            contraindications=("facial application", "skin infections"),
            monitoring=("symptom improvement", "skin atrophy signs"),
            sources=("NICE Guidelines 2023", "AAD Steroid Guidelines"),
        ),
        TreatmentId.ANTIHISTAMINES: TreatmentTemplate(
            recommendation="Take a sedating antihistamine at night to reduce itch-driven scratching",
            rationale="Breaks the itch-scratch cycle and improves sleep during flares",
            timeframe="Nightly during flares",
            contraindications=("glaucoma", "urinary retention"),
            monitoring=("daytime drowsiness", "sleep quality"),
            sources=("EADV Consensus 2022",),
        ),
        TreatmentId.TOPICAL_IMMUNOMODULATORS: TreatmentTemplate(
            recommendation="Discuss topical immunomodulator therapy with your dermatologist",
            rationale="Steroid-sparing control for recurrent moderate disease",
            timeframe="As prescribed, reassess after 4 weeks",
            contraindications=("active skin infection",),
            monitoring=("application-site reactions", "infection signs"),
            sources=("AAD Clinical Guidelines 2023",),
        ),
        TreatmentId.PHOTOTHERAPY: TreatmentTemplate(
            recommendation="Ask your dermatologist about narrowband UVB phototherapy",
            rationale="Reduces inflammation when topical treatment alone is insufficient",
            timeframe="2-3 sessions weekly for 8-12 weeks",
            monitoring=("erythema after sessions", "cumulative UV dose"),
            sources=("Joint AAD-NPF Phototherapy Guidelines 2019",),
        ),
    }
)

# Contraindication and interaction tables are keyed by drug class, not by treatment.
_CONTRAINDICATIONS: MappingProxyType[str, tuple[str, ...]] = MappingProxyType(
    {
        "topical_steroids": ("viral_infections", "bacterial_infections", "rosacea"),
        "immunosuppressants": ("active_infections", "pregnancy", "malignancy"),
        "phototherapy": ("lupus", "photodermatoses", "immunosuppression"),
    }
)

_DRUG_INTERACTIONS: MappingProxyType[str, tuple[str, ...]] = MappingProxyType(
    {
        "topical_corticosteroids": ("avoid_occlusion", "monitor_skin_atrophy"),
        "calcineurin_inhibitors": ("avoid_uv_exposure", "infection_monitoring"),
        "systemic_immunosuppressants": (
            "infection_screening",
            "liver_monitoring",
            "cancer_surveillance",
        ),
    }
)

_EVIDENCE: MappingProxyType[str, EvidenceRecord] = MappingProxyType(
    {
        "moisturizer_efficacy": EvidenceRecord(
            level=EvidenceGrade.GRADE_A,
            studies=245,
            effect_size=0.82,
            source="Cochrane Review 2023",
        ),
        "topical_steroid_efficacy": EvidenceRecord(
            level=EvidenceGrade.GRADE_A,
            studies=189,
            effect_size=0.91,
            source="Meta-analysis JAMA 2022",
        ),
        "trigger_avoidance": EvidenceRecord(
            level=EvidenceGrade.GRADE_B,
            studies=78,
            effect_size=0.67,
            source="Systematic Review 2023",
        ),
    }
)

# Which drug class / evidence entry each treatment belongs to
_CONTRAINDICATION_CLASS: MappingProxyType[TreatmentId, str] = MappingProxyType(
    {
        TreatmentId.TOPICAL_CORTICOSTEROIDS_LOW: "topical_steroids",
        TreatmentId.MID_POTENCY_STEROIDS: "topical_steroids",
        TreatmentId.SYSTEMIC_IMMUNOSUPPRESSANTS: "immunosuppressants",
        TreatmentId.SYSTEMIC_THERAPY: "immunosuppressants",
        TreatmentId.PHOTOTHERAPY: "phototherapy",
    }
)

_INTERACTION_CLASS: MappingProxyType[TreatmentId, str] = MappingProxyType(
    {
        TreatmentId.TOPICAL_CORTICOSTEROIDS_LOW: "topical_corticosteroids",
        TreatmentId.MID_POTENCY_STEROIDS: "topical_corticosteroids",
        TreatmentId.CALCINEURIN_INHIBITORS: "calcineurin_inhibitors",
        TreatmentId.SYSTEMIC_IMMUNOSUPPRESSANTS: "systemic_immunosuppressants",
    }
)

_EVIDENCE_CLASS: MappingProxyType[TreatmentId, str] = MappingProxyType(
    {
        TreatmentId.TOPICAL_MOISTURIZERS: "moisturizer_efficacy",
        TreatmentId.INTENSIVE_MOISTURIZING: "moisturizer_efficacy",
        TreatmentId.TOPICAL_CORTICOSTEROIDS_LOW: "topical_steroid_efficacy",
        TreatmentId.MID_POTENCY_STEROIDS: "topical_steroid_efficacy",
        TreatmentId.TRIGGER_AVOIDANCE: "trigger_avoidance",
    }
)


def get_protocol(condition: Condition, severity: SeverityGrade) -> TreatmentProtocol | None:
    """Protocol for the pair, or None when no guideline is on file."""
    return _PROTOCOLS.get((condition, severity))


def get_template(treatment: TreatmentId) -> TreatmentTemplate | None:
    return _TEMPLATES.get(treatment)


def get_contraindications(treatment: TreatmentId) -> list[str]:
    drug_class = _CONTRAINDICATION_CLASS.get(treatment)
    if drug_class is None:
        return []
    return list(_CONTRAINDICATIONS[drug_class])


def get_interactions(treatment: TreatmentId) -> list[str]:
    drug_class = _INTERACTION_CLASS.get(treatment)
    if drug_class is None:
        return []
    return list(_DRUG_INTERACTIONS[drug_class])


def get_evidence(treatment: TreatmentId) -> EvidenceRecord | None:
    key = _EVIDENCE_CLASS.get(treatment)
    return _EVIDENCE.get(key) if key else None
