"""
Chain routing for civic actions.

The scaling network takes high-frequency, low-stakes events; anything that
certifies an outcome belongs on the trust layer.
"""

from dataclasses import dataclass
from enum import StrEnum

SCALING_CHAIN = "Shardeum"
TRUST_CHAIN = "Optimism"


class CivicActionType(StrEnum):
    """Civic actions, by the layer that should record them."""

    # Critical actions -> trust layer only
    ATTESTATION = "attestation"
    GOVERNANCE_VOTE = "governance_vote"
    IDENTITY_VERIFICATION = "identity_verification"
    PROOF_OF_RESOLUTION = "proof_of_resolution"
    BADGE_ISSUANCE = "badge_issuance"

    # High-frequency actions -> scaling layer suitable
    EVENT_LOG = "event_log"
    PARTICIPATION_RECORD = "participation_record"
    ACTIVITY_METRIC = "activity_metric"


CRITICAL_ACTIONS = frozenset({
    CivicActionType.ATTESTATION,
    CivicActionType.GOVERNANCE_VOTE,
    CivicActionType.IDENTITY_VERIFICATION,
    CivicActionType.PROOF_OF_RESOLUTION,
    CivicActionType.BADGE_ISSUANCE,
})

HIGH_FREQUENCY_ACTIONS = frozenset({
    CivicActionType.EVENT_LOG,
    CivicActionType.PARTICIPATION_RECORD,
    CivicActionType.ACTIVITY_METRIC,
})


@dataclass(frozen=True)
class ChainRecommendation:
    recommended_chain: str
    reason: str
    scaling_suitable: bool
    trust_layer_required: bool = True


def recommend_chain(
    action: CivicActionType | str,
    scaling_enabled: bool,
) -> ChainRecommendation:
    """
    Pick the layer for a civic action.

    Args:
        action: Action type (enum or its value)
        scaling_enabled: Whether the scaling-network integration is on

    Returns:
        ChainRecommendation
    """
    action = CivicActionType(action)

    if action in CRITICAL_ACTIONS:
        return ChainRecommendation(
            recommended_chain=TRUST_CHAIN,
            reason="Critical governance actions require canonical trust layer",
            scaling_suitable=False,
        )

    if scaling_enabled and action in HIGH_FREQUENCY_ACTIONS:
        return ChainRecommendation(
            recommended_chain=SCALING_CHAIN,
            reason="High-frequency event suitable for scalability layer",
            scaling_suitable=True,
            trust_layer_required=False,
        )

    return ChainRecommendation(
        recommended_chain=TRUST_CHAIN,
        reason="Default to canonical trust layer",
        scaling_suitable=False,
    )
