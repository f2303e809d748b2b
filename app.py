import os
import logging
import streamlit as st

# --- OTel & Observability Imports ---
from opentelemetry import trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource

# --- OTel Logging Imports ---
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter

# --- Prometheus Import ---
from prometheus_client import start_http_server

# --- Application Imports ---
from supabase import Client, create_client

from learnit.config import AppConfig
from learnit.quiz.adapters.blob_store import LocalBlobStore, SupabaseBlobStore
from learnit.quiz.adapters.db_manager import DatabaseManager
from learnit.quiz.adapters.gemini_generator import GeminiQuestionGenerator
from learnit.quiz.adapters.identity import GuestIdentityProvider, SupabaseIdentityProvider
from learnit.quiz.adapters.seeder import DataSeeder
from learnit.quiz.adapters.sqlite_store import SQLiteDocumentStore
from learnit.quiz.adapters.supabase_store import SupabaseDocumentStore
from learnit.quiz.application.deck_service import DeckService
from learnit.quiz.application.feedback_service import FeedbackService
from learnit.quiz.application.identity_service import IdentityService
from learnit.quiz.application.profile_service import ProfileService
from learnit.quiz.application.session_service import LiveSessionService
from learnit.quiz.domain.errors import ConfigurationError, LearnItError
from learnit.quiz.domain.ports import IBlobStore, IDocumentStore
from learnit.quiz.presentation.context import AppContext
from learnit.quiz.presentation.router import Screen, parse_route
from learnit.quiz.presentation.state_provider import StreamlitStateProvider
from learnit.quiz.presentation.views import (
    components,
    dashboard_view,
    deck_view,
    feedback_view,
    live_view,
    login_view,
    profile_view,
    review_view,
)
from learnit.shared.telemetry import Telemetry


# --- 1. Configure Observability ---
def configure_observability():
    """
    Configures OpenTelemetry to send Traces and Logs via OTLP.
    Starts a background Prometheus server for Metrics.
    """
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    headers = os.getenv("OTEL_EXPORTER_OTLP_HEADERS")

    if not endpoint or not headers:
        print("⚠️ Observability Warning: OTEL env vars not set. Telemetry will not be sent to Cloud.")
        return

    resource = Resource.create({"service.name": "learnit-app"})

    # --- A. TRACING SETUP ---
    trace_provider = TracerProvider(resource=resource)
    otlp_trace_exporter = OTLPSpanExporter(endpoint=endpoint, headers=headers)
    trace_provider.add_span_processor(BatchSpanProcessor(otlp_trace_exporter))
    trace.set_tracer_provider(trace_provider)

    # --- B. LOGGING SETUP ---
    logger_provider = LoggerProvider(resource=resource)
    otlp_log_exporter = OTLPLogExporter(endpoint=endpoint, headers=headers)
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(otlp_log_exporter))
    set_logger_provider(logger_provider)

    handler = LoggingHandler(level=logging.INFO, logger_provider=logger_provider)
    logging.getLogger().addHandler(handler)

    # --- C. METRICS SETUP (Prometheus) ---
    try:
        start_http_server(8000)
        print("✅ Prometheus Metrics server started on port 8000")
    except OSError:
        print("⚠️ Prometheus port 8000 already in use (likely Streamlit reload). Skipping.")


# --- 2. Bootstrap Application ---
if "observability_configured" not in st.session_state:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(message)s')

    configure_observability()
    st.session_state.observability_configured = True


# --- 3. Dependency Injection (Composition Root) ---
def _supabase_client() -> Client:
    url, key = AppConfig.supabase_url(), AppConfig.supabase_key()
    if not url or not key:
        raise ConfigurationError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(url, key)


@st.cache_resource
def get_infrastructure() -> tuple[IDocumentStore, IBlobStore]:
    if AppConfig.backend() == "supabase":
        client = _supabase_client()
        return (
            SupabaseDocumentStore(client=client),
            SupabaseBlobStore(client, AppConfig.supabase_bucket()),
        )

    store = SQLiteDocumentStore(DatabaseManager(AppConfig.db_path()))
    return store, LocalBlobStore(AppConfig.upload_dir())


@st.cache_resource
def get_services() -> tuple[DeckService, LiveSessionService, FeedbackService]:
    store, _ = get_infrastructure()
    decks = DeckService(store, GeminiQuestionGenerator(AppConfig.gemini_api_key()))
    DataSeeder(decks).seed_if_empty()
    return decks, LiveSessionService(store, decks), FeedbackService(store)


def get_federated_identity(state: StreamlitStateProvider) -> SupabaseIdentityProvider | None:
    # Auth sessions are per browser tab, so the client lives in session state
    if AppConfig.backend() != "supabase":
        return None
    provider = state.get("federated_identity")
    if provider is None:
        provider = SupabaseIdentityProvider(_supabase_client())
        state.set("federated_identity", provider)
    return provider


def build_context() -> AppContext:
    store, blobs = get_infrastructure()
    decks, sessions, feedback = get_services()

    state = StreamlitStateProvider()
    guest = GuestIdentityProvider(state)
    federated = get_federated_identity(state)

    return AppContext(
        state=state,
        decks=decks,
        sessions=sessions,
        feedback=feedback,
        profiles=ProfileService(store, decks, blobs, guest),
        identity=IdentityService(guest, federated),
        guest=guest,
        federated=federated,
    )


def _complete_oauth(ctx: AppContext) -> None:
    code = st.query_params.get("code")
    if code and ctx.federated is not None:
        identity = ctx.federated.complete_sign_in(code)
        ctx.profiles.ensure_profile(identity)
        del st.query_params["code"]


def main():
    st.set_page_config(page_title=AppConfig.APP_TITLE, page_icon=AppConfig.APP_ICON, layout="wide")
    components.apply_styles()

    st.session_state.correlation_id = Telemetry.start_trace()
    ctx = build_context()

    try:
        _complete_oauth(ctx)
    except LearnItError as e:
        st.error(str(e))

    user = ctx.identity.current_user()
    if user is None:
        login_view.render_login_screen(ctx, redirect_to=os.getenv("LEARNIT_PUBLIC_URL", "http://localhost:8501"))
        return

    if components.render_sidebar(user):
        ctx.identity.sign_out()
        st.rerun()

    # --- 4. Main Router (query params) ---
    route = parse_route(st.query_params)

    # Navigating away from a game drops its subscription and host timers
    live_view.release_live_client(
        ctx.state, route.target if route.screen == Screen.PLAY else None
    )

    if route.screen == Screen.PLAY and route.target:
        live_view.render_live_screen(ctx, user, route.target)

    elif route.screen == Screen.REVIEW and route.target:
        review_view.render_review_screen(ctx, user, route.target)

    elif route.screen == Screen.DECK and route.target:
        deck_view.render_deck_screen(ctx, user, route.target)

    elif route.screen == Screen.FEEDBACK:
        feedback_view.render_feedback_screen(ctx, user)

    elif route.screen == Screen.PROFILE:
        profile_view.render_profile_screen(ctx, user)

    else:
        dashboard_view.render_dashboard_screen(ctx, user)


if __name__ == "__main__":
    main()
