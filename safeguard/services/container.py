"""Composition root.

Every component is constructed once at process start with explicit
references to its collaborators. Nothing in the package keeps module
level service instances.
"""
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from safeguard.shared.database import ConnectionManager, DatabaseConfig
from safeguard.shared.utils import configure_pii_salt
from .audit_service import AuditLedger, AuditRepository
from .content_service import (
    ContentRiskAnalyzer,
    PatternLibrary,
    SafeAlternativeGenerator,
    load_pattern_library,
)
from .incident_service import (
    EmergencyNotifier,
    IncidentManager,
    NotifierConfig,
    SafetyIncidentRepository,
)
from .llm_service import BaseLLM, LLMConfig, LLMProvider, create_llm
from .profile_service import SafetyProfileManager, SafetyProfileRepository, UserDirectory
from .threat_service import CommunityThreatAggregator, CommunityThreatRepository

logger = logging.getLogger(__name__)

TABLE_NAMES = (
    AuditRepository.table_name,
    SafetyProfileRepository.table_name,
    UserDirectory.table_name,
    SafetyIncidentRepository.table_name,
    CommunityThreatRepository.table_name,
)


@dataclass
class Services:
    users: UserDirectory
    audit_ledger: AuditLedger
    profile_manager: SafetyProfileManager
    incident_manager: IncidentManager
    threat_aggregator: CommunityThreatAggregator
    content_analyzer: ContentRiskAnalyzer
    alternative_generator: Optional[SafeAlternativeGenerator] = None
    connection_manager: Optional[ConnectionManager] = None


def build_services(
    connection_manager: Optional[ConnectionManager] = None,
    notifier: Optional[EmergencyNotifier] = None,
    llm: Optional[BaseLLM] = None,
    library: Optional[PatternLibrary] = None,
    clock: Callable[[], datetime] = datetime.utcnow,
    local_clock: Callable[[], datetime] = datetime.now,
) -> Services:
    """Wire every component.

    Args:
        connection_manager: PostgreSQL pool; None keeps everything in memory
        notifier: Emergency notifier; None disables notifications
        llm: Text-generation collaborator; None disables generated alternatives
        library: Content pattern library (defaults to the built-in version)
        clock: UTC clock for stored timestamps
        local_clock: Wall-clock time for the content timing detector
    """
    users = UserDirectory(connection_manager)
    profiles = SafetyProfileRepository(connection_manager)
    incidents = SafetyIncidentRepository(connection_manager)
    threats = CommunityThreatRepository(connection_manager)
    audit_ledger = AuditLedger(repository=AuditRepository(connection_manager), clock=clock)

    profile_manager = SafetyProfileManager(
        profiles=profiles,
        users=users,
        incidents=incidents,
        audit_ledger=audit_ledger,
        clock=clock,
    )
    threat_aggregator = CommunityThreatAggregator(threats=threats, clock=clock)
    incident_manager = IncidentManager(
        incidents=incidents,
        profile_manager=profile_manager,
        audit_ledger=audit_ledger,
        notifier=notifier,
        threat_aggregator=threat_aggregator,
        clock=clock,
    )
    content_analyzer = ContentRiskAnalyzer(
        library=library,
        audit_ledger=audit_ledger,
        profile_repository=profiles,
        clock=local_clock,
    )

    return Services(
        users=users,
        audit_ledger=audit_ledger,
        profile_manager=profile_manager,
        incident_manager=incident_manager,
        threat_aggregator=threat_aggregator,
        content_analyzer=content_analyzer,
        alternative_generator=(
            SafeAlternativeGenerator(llm=llm, analyzer=content_analyzer)
            if llm is not None else None
        ),
        connection_manager=connection_manager,
    )


def build_services_from_env() -> Services:
    """Wire production collaborators from the environment.

    Environment variables:
        PII_HASH_SALT: Salt for hashed identifiers in logs
        SAFEGUARD_USE_DATABASE: "true" stores documents in PostgreSQL
        PATTERN_LIBRARY_PATH: JSON pattern library replacing the defaults
        OPENAI_API_KEY / LLM_PROVIDER: enable generated alternatives
        plus the DB_*, EMERGENCY_* and AWS_REGION variables of each config
    """
    configure_pii_salt(
        os.getenv("PII_HASH_SALT", "default_dev_salt_change_in_production_32chars")
    )

    connection_manager = None
    if os.getenv("SAFEGUARD_USE_DATABASE", "false").lower() == "true":
        connection_manager = ConnectionManager(DatabaseConfig.from_env())
        connection_manager.initialize()
        connection_manager.ensure_tables(TABLE_NAMES)

    llm = None
    llm_config = LLMConfig.from_env()
    if llm_config.provider == LLMProvider.HUGGINGFACE or llm_config.api_key:
        llm = create_llm(llm_config)

    services = build_services(
        connection_manager=connection_manager,
        notifier=EmergencyNotifier(NotifierConfig.from_env()),
        llm=llm,
        library=load_pattern_library(),
    )
    logger.info(
        "SERVICES_BUILT",
        extra={
            "backend": "postgresql" if connection_manager else "memory",
            "pattern_version": services.content_analyzer.library.version,
            "alternatives_enabled": llm is not None,
        }
    )
    return services
