"""FastAPI dependency injection providers.

Each collaborator is a lazily built module-level singleton so routes, the
lifespan hook and tests all share one instance. Tests reset them by
assigning ``None``.
"""

from .config import IncidentPilotConfig, get_config
from .database import get_session_factory

_config_instance: IncidentPilotConfig | None = None
_incident_store = None
_notification_dispatcher = None
_incident_analyzer = None
_similarity_matcher = None
_status_workflow = None
_incident_manager = None


def get_app_config() -> IncidentPilotConfig:
    """Get the application config singleton."""
    global _config_instance
    if _config_instance is None:
        _config_instance = get_config()
    return _config_instance


def get_incident_store():
    """Get the incident store singleton."""
    global _incident_store
    if _incident_store is None:
        from .store.sql_store import SQLIncidentStore
        _incident_store = SQLIncidentStore(db_session_factory=get_session_factory(get_app_config()))
    return _incident_store


def get_notification_dispatcher():
    """Get the Notification Dispatcher singleton."""
    global _notification_dispatcher
    if _notification_dispatcher is None:
        from .notifications.dispatcher import NotificationDispatcher
        config = get_app_config()
        smtp_config = None
        if config.smtp_enabled:
            smtp_config = {
                "host": config.smtp_host,
                "port": config.smtp_port,
                "username": config.smtp_username,
                "password": config.smtp_password,
                "from_addr": config.smtp_from_addr,
            }
        _notification_dispatcher = NotificationDispatcher(
            smtp_config=smtp_config,
            webhook_url=config.notification_webhook_url,
            timeout=config.notification_timeout_seconds,
            max_attempts=config.notification_max_attempts,
            retry_backoff=config.notification_retry_backoff_seconds,
            queue_size=config.notification_queue_size,
        )
    return _notification_dispatcher


def get_incident_analyzer():
    """Get the AI Incident Analyzer singleton."""
    global _incident_analyzer
    if _incident_analyzer is None:
        from .ai.incident_analyzer import IncidentAnalyzer
        config = get_app_config()
        _incident_analyzer = IncidentAnalyzer(
            api_key=config.openai_api_key,
            model=config.ai_model,
            timeout=config.ai_timeout_seconds,
            max_tokens=config.ai_max_tokens,
            base_url=config.openai_base_url,
        )
    return _incident_analyzer


def get_similarity_matcher():
    """Get the Similarity Matcher singleton."""
    global _similarity_matcher
    if _similarity_matcher is None:
        from .engine.similarity import SimilarityMatcher
        config = get_app_config()
        _similarity_matcher = SimilarityMatcher(
            limit=config.similarity_limit,
            threshold=config.similarity_threshold,
        )
    return _similarity_matcher


def get_status_workflow():
    """Get the Status Workflow singleton."""
    global _status_workflow
    if _status_workflow is None:
        from .engine.workflow import StatusWorkflow
        _status_workflow = StatusWorkflow(
            store=get_incident_store(),
            notifier=get_notification_dispatcher(),
            app_url=get_app_config().app_url,
        )
    return _status_workflow


def get_incident_manager():
    """Get the Incident Manager singleton."""
    global _incident_manager
    if _incident_manager is None:
        from .engine.incident_manager import IncidentManager
        _incident_manager = IncidentManager(
            store=get_incident_store(),
            workflow=get_status_workflow(),
            matcher=get_similarity_matcher(),
            analyzer=get_incident_analyzer(),
        )
    return _incident_manager
