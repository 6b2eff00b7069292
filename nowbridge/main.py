#!/usr/bin/env python3
"""
Nowbridge - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Runs the API server

All business logic is in the modules, following black box principles.
"""

import dataclasses
import logging
import secrets
from contextlib import asynccontextmanager
from typing import Dict, Optional, Tuple

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException

from nowbridge import __version__
from nowbridge.config.provider import ConfigProvider, EnvConfigProvider
from nowbridge.logging_config import configure_logging

# Import modules through their black box interfaces
from nowbridge.modules.api import (
    ExecuteScriptRequest,
    ExecutionResponse,
    HealthResponse,
    LoginResponse,
    ValidateScriptRequest,
)
from nowbridge.modules.auth import AuthCredentials, AuthenticationManager
from nowbridge.modules.client import ClientConfig, ServiceNowClient
from nowbridge.modules.executor import ExecutionOptions, ScriptExecutor
from nowbridge.modules.security import (
    ScriptSecurityValidator,
    SecurityConfig,
    load_security_config,
)

logger = logging.getLogger("nowbridge.main")

# Configuration provider (centralized config access)
config_provider: ConfigProvider = EnvConfigProvider()

# Module instances (initialized at startup)
auth_manager: Optional[AuthenticationManager] = None
script_executor: Optional[ScriptExecutor] = None
api_keys: Dict[str, Optional[str]] = {}


def build_modules(provider: ConfigProvider) -> Tuple[AuthenticationManager, ScriptExecutor]:
    """
    Wire the core modules from configuration.

    Returns:
        Tuple of (auth_manager, script_executor)

    Raises:
        ValueError: On missing or malformed configuration
    """
    servicenow = provider.get_servicenow_config()
    execution = provider.get_execution_config()

    auth = AuthenticationManager(
        AuthCredentials(
            instance_url=servicenow.instance_url,
            username=servicenow.username,
            password=servicenow.password,
        ),
        verify_ssl=servicenow.verify_ssl,
    )

    client = ServiceNowClient(
        ClientConfig(
            instance_url=servicenow.instance_url,
            timeout_ms=servicenow.timeout_ms,
            max_retries=servicenow.max_retries,
            script_endpoint=execution.script_endpoint,
            default_script_timeout_ms=execution.default_timeout_ms,
            verify_ssl=servicenow.verify_ssl,
        ),
        auth,
    )

    security_logger = logging.getLogger("nowbridge.security")
    base_policy = SecurityConfig(max_script_length=execution.max_script_length)
    if execution.security_policy_path:
        policy = load_security_config(
            execution.security_policy_path, base=base_policy, logger=security_logger
        )
    else:
        policy = base_policy

    executor = ScriptExecutor(
        client,
        ScriptSecurityValidator(policy, logger=security_logger),
        test_mode_max_results=execution.test_mode_max_results,
    )
    return auth, executor


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - initialize modules and authenticate once.
    """
    global auth_manager, script_executor, api_keys

    # Startup
    logger.info("Starting Nowbridge API...")

    api_config = config_provider.get_api_config()
    api_keys = api_config.api_keys
    if api_config.require_api_key:
        logger.info(f"API key authentication enabled ({len(api_keys)} keys)")
    else:
        logger.warning("API_KEYS not set; script endpoints are unauthenticated")
    auth_manager, script_executor = build_modules(config_provider)

    result = await auth_manager.authenticate()
    if result.success:
        logger.info("Authenticated with ServiceNow instance")
    else:
        # The API still starts; /auth/login can retry once the instance is reachable
        logger.error(f"Startup authentication failed: {result.error}")

    logger.info("Nowbridge API started successfully")

    yield

    # Shutdown
    logger.info("Nowbridge API shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Nowbridge API",
    description="Nowbridge - Screened GlideQuery execution against ServiceNow",
    version=__version__,
    lifespan=lifespan,
)


# Dependency injection helpers
async def verify_api_key(
    x_api_key: Optional[str] = Header(None, description="API key for authentication")
) -> Optional[str]:
    """
    Verify the API key when keys are configured.

    Returns:
        Service identity of the key, if any
    """
    if not api_keys:
        return None

    if not x_api_key:
        raise HTTPException(401, "Missing API key")

    for key, service in api_keys.items():
        if secrets.compare_digest(x_api_key.encode(), key.encode()):
            return service

    raise HTTPException(401, "Invalid API key")


def require_executor() -> ScriptExecutor:
    if not script_executor:
        raise HTTPException(503, "Service not initialized")
    return script_executor


# Health Endpoint


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint; never touches the instance."""
    return HealthResponse(
        status="healthy",
        authenticated=bool(auth_manager and auth_manager.is_authenticated()),
        version=__version__,
    )


# Auth Endpoints


@app.post("/auth/login", response_model=LoginResponse)
async def login(service: Optional[str] = Depends(verify_api_key)):
    """
    Re-run authentication against the instance.

    Returns:
        200: Authentication attempted (see success/error)
        401: Invalid API key
        503: Service not initialized
    """
    if not auth_manager:
        raise HTTPException(503, "Service not initialized")

    logger.info(f"Authentication requested by {service or 'direct'}")
    result = await auth_manager.authenticate()
    return LoginResponse(success=result.success, error=result.error)


# Script Endpoints


@app.post("/scripts/execute", response_model=ExecutionResponse)
async def execute_script(
    request: ExecuteScriptRequest,
    service: Optional[str] = Depends(verify_api_key),
    executor: ScriptExecutor = Depends(require_executor),
):
    """
    Execute a GlideQuery script.

    Returns:
        200: Execution attempted (failures carry error and error_code)
        401: Invalid API key
        422: Invalid request body
    """
    result = await executor.execute(
        request.script,
        ExecutionOptions(
            timeout_ms=request.timeout_ms,
            test_mode=request.test_mode,
            max_results=request.max_results,
        ),
    )
    return ExecutionResponse(**result.to_dict())


@app.post("/scripts/test", response_model=ExecutionResponse)
async def test_script(
    request: ExecuteScriptRequest,
    service: Optional[str] = Depends(verify_api_key),
    executor: ScriptExecutor = Depends(require_executor),
):
    """Execute a script in test mode regardless of the request flag."""
    result = await executor.test(
        request.script, max_results=request.max_results, timeout_ms=request.timeout_ms
    )
    return ExecutionResponse(**result.to_dict())


@app.post("/scripts/validate")
async def validate_script(
    request: ValidateScriptRequest,
    service: Optional[str] = Depends(verify_api_key),
    executor: ScriptExecutor = Depends(require_executor),
):
    """Run the security screen and the syntax check without executing."""
    return {
        "security": dataclasses.asdict(executor.validator.validate(request.script)),
        "syntax": dataclasses.asdict(executor.validate_syntax(request.script)),
    }


@app.post("/scripts/validate-include")
async def validate_script_include(
    request: ValidateScriptRequest,
    service: Optional[str] = Depends(verify_api_key),
    executor: ScriptExecutor = Depends(require_executor),
):
    """Validate Script Include code against the library rule set."""
    return dataclasses.asdict(executor.validator.validate_script_include(request.script))


def main():
    """Run the API server."""
    api_config = config_provider.get_api_config()
    configure_logging(api_config.log_level)
    # Logging is already configured; uvicorn must not replace it
    uvicorn.run(
        app,
        host=api_config.host,
        port=api_config.port,
        log_level=api_config.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
