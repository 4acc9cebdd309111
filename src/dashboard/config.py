from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class Settings:
    """Centralized application settings.

    This keeps environment-variable handling in one place so other modules can
    depend on strongly-typed attributes instead of calling os.getenv
    directly.
    """

    # Remote data gateway selection: "memory" (default) or "http".
    gateway_backend: str = os.getenv("GATEWAY_BACKEND", "memory")

    # Hosted backend connection. The anon key is sent as the ``apikey`` header
    # on every request; the service key is only used for provisioning.
    gateway_url: str = os.getenv("GATEWAY_URL", "http://localhost:54321")
    gateway_anon_key: Optional[str] = os.getenv("GATEWAY_ANON_KEY")
    gateway_service_key: Optional[str] = os.getenv("GATEWAY_SERVICE_KEY")
    gateway_timeout_seconds: float = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10"))

    # Remote procedure and function names used by the notes module.
    notes_get_rpc: str = os.getenv("NOTES_GET_RPC", "get_patient_notes")
    notes_add_rpc: str = os.getenv("NOTES_ADD_RPC", "add_patient_note")
    notes_delete_rpc: str = os.getenv("NOTES_DELETE_RPC", "delete_patient_note")
    notes_provision_function: str = os.getenv("NOTES_PROVISION_FUNCTION", "create-notes-table")

    # Remote inference function backing the AI assistant.
    ai_function_name: str = os.getenv("AI_FUNCTION_NAME", "doctor-ai")

    # Table holding one JSON-encoded patient blob per row.
    patients_table: str = os.getenv("PATIENTS_TABLE", "patients")

    # Run the best-effort notes table provisioning once at startup.
    provision_on_startup: bool = os.getenv("PROVISION_ON_STARTUP", "true").lower() == "true"

    # Direct database access for the deployment-time schema bootstrap only.
    database_url: Optional[str] = os.getenv("DATABASE_URL")

    # When ENABLE_API_AUTH=true, protected endpoints require a bearer token
    # that the gateway resolves to a user.
    enable_api_auth: bool = os.getenv("ENABLE_API_AUTH", "false").lower() == "true"

    # CORS configuration: comma-separated origins (e.g. "https://app.example.com,https://admin.example.com").
    # Default is "*" (allow all) which is acceptable for local development but
    # should be tightened in production.
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "*")

    # IANA timezone used when formatting note timestamps for display.
    display_timezone: str = os.getenv("DISPLAY_TIMEZONE", "UTC")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
