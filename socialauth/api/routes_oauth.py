"""
OAuth 2.0 social login routes.

Endpoints:
- GET  /auth/providers - List enabled providers
- GET  /auth/error - Diagnostic page for a failed login
- GET  /auth/success - Diagnostic page showing the session profile
- GET  /auth/{provider} - Initiate OAuth flow
- GET  /auth/{provider}/callback - Handle OAuth callback

Only handles the HTTP layer. Strategy dispatch lives in the registry and
everything after the provider callback in the auth workflow.
"""

import logging
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from jinja2 import Environment, FileSystemLoader, select_autoescape

from socialauth.api.dependencies import RegistryDep, SettingsDep, WorkflowDep
from socialauth.api.rate_limit import RATE_LIMITS, limiter
from socialauth.core.exceptions import SocialAuthException
from socialauth.models import schemas
from socialauth.services.oauth.requests import CallbackRequest, InitiationRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["oauth"])

TEMPLATE_DIR = Path(__file__).parent.parent / "templates" / "auth"
_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)


def _build_redirect_with_params(base_url: str, params: dict[str, str]) -> str:
    """Append query parameters to an existing URL safely."""
    parsed = urlparse(base_url)
    existing_params = dict(parse_qsl(parsed.query, keep_blank_values=True))
    existing_params.update(params)
    new_query = urlencode(existing_params)
    return urlunparse(parsed._replace(query=new_query))


def _expects_json(request: Request) -> bool:
    accept_header = (request.headers.get("accept", "") or "").lower()
    sec_fetch_mode = (request.headers.get("sec-fetch-mode", "") or "").lower()
    return "application/json" in accept_header or bool(sec_fetch_mode and sec_fetch_mode != "navigate")


def _render(template_name: str, **context: Any) -> HTMLResponse:
    html = _templates.get_template(template_name).render(**context)
    return HTMLResponse(content=html)


def _safe_picture(url: Any) -> str:
    if isinstance(url, str) and url.startswith(("https://", "http://")):
        return url
    return ""


@router.get("/providers", response_model=schemas.OAuthProvidersOut)
async def list_oauth_providers(request: Request, registry: RegistryDep) -> dict:
    """
    List enabled OAuth providers.

    Returns:
        {
            "providers": [
                {
                    "name": "google",
                    "display_name": "Google",
                    "login_url": "http://testserver/auth/google",
                    "uses_pkce": false
                }
            ]
        }
    """
    providers = []
    for name in registry.providers():
        strategy = registry.get(name)
        providers.append({
            "name": name,
            "display_name": strategy.display_name,
            "login_url": str(request.url_for("oauth_login", provider=name)),
            "uses_pkce": strategy.uses_pkce,
        })
    return {"providers": providers}


@router.get("/error", response_class=HTMLResponse)
async def auth_error_page(
    request: Request,
    app_settings: SettingsDep,
    error: str | None = Query(None, description="Message of the failed login"),
) -> HTMLResponse:
    """Human-readable page for a failed login. Diagnostic only."""
    registry = getattr(request.app.state, "strategy_registry", None)
    return _render(
        "auth_error.html",
        app_name=app_settings.APP_NAME,
        error=error or "Unknown error",
        providers=registry.providers() if registry is not None else [],
    )


@router.get("/success", response_class=HTMLResponse)
async def auth_success_page(
    request: Request,
    app_settings: SettingsDep,
    email: str | None = Query(None, description="Email of the signed in user"),
) -> HTMLResponse:
    """Human-readable page showing the profile kept in the session. Diagnostic only."""
    profile = request.session.get("profile")
    if isinstance(profile, dict):
        profile = {**profile, "picture": _safe_picture(profile.get("picture"))}
    else:
        profile = None
    return _render(
        "auth_success.html",
        app_name=app_settings.APP_NAME,
        email=email or (profile or {}).get("email"),
        profile=profile,
    )


@router.get("/{provider}", name="oauth_login")
@limiter.limit(RATE_LIMITS["oauth_login"])
async def oauth_login(
    request: Request,
    provider: str,
    registry: RegistryDep,
    app_settings: SettingsDep,
) -> RedirectResponse:
    """
    Initiate OAuth login flow.

    Redirects the browser to the provider's authorization page. Unknown or
    misconfigured providers redirect to the failure URL instead.

    Example:
        GET /auth/github
    """
    try:
        redirect = await registry.authenticate(provider, InitiationRequest(provider=provider.lower()))
    except SocialAuthException as e:
        logger.warning(f"Could not initiate OAuth login with {provider}: {e.message}")
        failure_url = _build_redirect_with_params(app_settings.AUTH_FAILURE_REDIRECT, {"error": e.message})
        return RedirectResponse(url=failure_url, status_code=302)

    logger.info(f"Initiating OAuth login with {redirect.provider}")
    return RedirectResponse(url=redirect.url, status_code=302)


@router.get("/{provider}/callback", response_model=None)
@limiter.limit(RATE_LIMITS["oauth_callback"])
async def oauth_callback(
    request: Request,
    provider: str,
    workflow: WorkflowDep,
    app_settings: SettingsDep,
) -> Response:
    """
    Handle OAuth provider callback.

    Completes OAuth flow:
    1. Validates CSRF state
    2. Exchanges code for an access token
    3. Fetches and normalizes the profile
    4. Creates/updates the local user
    5. Issues a JWT

    Browsers are redirected to ``AUTH_SUCCESS_REDIRECT`` with the profile
    stored in the session, or to ``AUTH_FAILURE_REDIRECT?error=<message>``.
    Clients asking for JSON get an ``OAuthCallbackOut`` body instead.

    Example:
        GET /auth/google/callback?code=4/xxx&state=abc123
    """
    callback = CallbackRequest.from_query(provider, request.query_params)
    result = await workflow.run(provider, callback)

    if _expects_json(request):
        if not result.success:
            body = schemas.OAuthCallbackOut(success=False, provider=result.provider, error=result.error_message)
            return JSONResponse(status_code=400, content=body.model_dump())
        body = schemas.OAuthCallbackOut(
            success=True,
            provider=result.provider,
            access_token=result.token,
            user_id=result.user.id,
            profile=result.profile.to_session(),
        )
        return JSONResponse(status_code=200, content=body.model_dump())

    if not result.success:
        failure_url = _build_redirect_with_params(
            app_settings.AUTH_FAILURE_REDIRECT, {"error": result.error_message or "Authentication failed"}
        )
        return RedirectResponse(url=failure_url, status_code=302)

    profile = result.profile.to_session()
    request.session["profile"] = profile
    request.session["user_id"] = result.user.id
    request.session["access_token"] = result.token

    success_url = app_settings.AUTH_SUCCESS_REDIRECT
    if profile.get("email"):
        success_url = _build_redirect_with_params(success_url, {"email": profile["email"]})
    logger.info(f"OAuth authentication successful for {result.provider}")
    return RedirectResponse(url=success_url, status_code=302)
