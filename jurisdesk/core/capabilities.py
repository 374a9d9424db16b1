"""
Account-tier capability gate and per-tier resource policy

Each tier lists its own grants. Higher tiers are not assumed to include the
grants of lower ones (COMPOSITE has basic_settings, MANAGERIAL does not), so
decisions always look up the exact tier and never compare tier ranks.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, Tuple

from jurisdesk.core.errors import CapabilityDenied
from jurisdesk.models.principal import TIER_ORDER, AccountTier
from jurisdesk.models.tenant import UNLIMITED


class Capability(str, Enum):
    """Modules gated by account tier"""
    CRM = "crm"
    CLIENTS = "clients"
    PROJECTS = "projects"
    TASKS = "tasks"
    BILLING = "billing"
    BASIC_SETTINGS = "basic_settings"
    CASH_FLOW = "cash_flow"
    TRANSACTIONS = "transactions"
    DASHBOARD = "dashboard"
    USER_MANAGEMENT = "user_management"
    ADVANCED_SETTINGS = "advanced_settings"
    AUDIT_LOGS = "audit_logs"


TIER_CAPABILITIES: Dict[AccountTier, FrozenSet[Capability]] = {
    AccountTier.SIMPLE: frozenset({
        Capability.CRM,
        Capability.CLIENTS,
        Capability.PROJECTS,
        Capability.TASKS,
        Capability.BILLING,
        Capability.BASIC_SETTINGS,
    }),
    AccountTier.COMPOSITE: frozenset({
        Capability.CRM,
        Capability.CLIENTS,
        Capability.PROJECTS,
        Capability.TASKS,
        Capability.BILLING,
        Capability.CASH_FLOW,
        Capability.TRANSACTIONS,
        Capability.DASHBOARD,
        Capability.BASIC_SETTINGS,
    }),
    AccountTier.MANAGERIAL: frozenset({
        Capability.CRM,
        Capability.CLIENTS,
        Capability.PROJECTS,
        Capability.TASKS,
        Capability.BILLING,
        Capability.CASH_FLOW,
        Capability.TRANSACTIONS,
        Capability.DASHBOARD,
        Capability.USER_MANAGEMENT,
        Capability.ADVANCED_SETTINGS,
        Capability.AUDIT_LOGS,
    }),
}


@dataclass(frozen=True)
class TierPolicy:
    """Resource ceilings and feature flags of an account tier (-1 = unlimited)"""
    max_clients: int
    max_projects: int
    max_storage_bytes: int
    features: FrozenSet[str]


MB = 1024 * 1024

TIER_POLICIES: Dict[AccountTier, TierPolicy] = {
    AccountTier.SIMPLE: TierPolicy(
        max_clients=50,
        max_projects=25,
        max_storage_bytes=100 * MB,
        features=frozenset(),
    ),
    AccountTier.COMPOSITE: TierPolicy(
        max_clients=200,
        max_projects=100,
        max_storage_bytes=500 * MB,
        features=frozenset({"dashboard_financial", "cash_flow"}),
    ),
    AccountTier.MANAGERIAL: TierPolicy(
        max_clients=UNLIMITED,
        max_projects=UNLIMITED,
        max_storage_bytes=5 * 1024 * MB,
        features=frozenset({"dashboard_financial", "cash_flow", "user_management", "advanced_reports"}),
    ),
}


def _require_every_tier(table: Mapping[AccountTier, object], name: str) -> None:
    missing = [tier.value for tier in AccountTier if tier not in table]
    if missing:
        raise RuntimeError(f"{name} has no entry for tiers: {', '.join(missing)}")


_require_every_tier(TIER_CAPABILITIES, "TIER_CAPABILITIES")
_require_every_tier(TIER_POLICIES, "TIER_POLICIES")


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    tier: AccountTier
    capability: Capability
    allowed_capabilities: Tuple[Capability, ...]
    suggested_tiers: Tuple[AccountTier, ...]


def get_capabilities_for_tier(tier: AccountTier) -> FrozenSet[Capability]:
    """Get the capabilities granted to a tier"""
    return TIER_CAPABILITIES[AccountTier(tier)]


def has_feature(tier: AccountTier, feature: str) -> bool:
    return feature in TIER_POLICIES[AccountTier(tier)].features


def tiers_granting(capability: Capability) -> List[AccountTier]:
    """Tiers, lowest first, whose table entry includes the capability"""
    return [tier for tier in TIER_ORDER if capability in TIER_CAPABILITIES[tier]]


def authorize(tier: AccountTier, capability: Capability) -> GateDecision:
    """Decide whether a tier may invoke a capability"""
    tier = AccountTier(tier)
    capability = Capability(capability)
    granted = TIER_CAPABILITIES[tier]
    allowed = capability in granted
    return GateDecision(
        allowed=allowed,
        tier=tier,
        capability=capability,
        allowed_capabilities=tuple(c for c in Capability if c in granted),
        suggested_tiers=() if allowed else tuple(tiers_granting(capability)),
    )


def ensure_capability(tier: AccountTier, capability: Capability) -> GateDecision:
    """Raise CapabilityDenied with upgrade suggestions unless the tier is granted"""
    decision = authorize(tier, capability)
    if not decision.allowed:
        raise CapabilityDenied(
            f"Account {decision.tier.value} does not include the module '{decision.capability.value}'",
            currentAccount=decision.tier.value,
            requiredModule=decision.capability.value,
            allowedModules=[c.value for c in decision.allowed_capabilities],
            suggestedAccounts=[t.value for t in decision.suggested_tiers],
        )
    return decision
