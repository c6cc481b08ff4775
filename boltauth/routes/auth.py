"""
Authentication routes - login/register/logout.
"""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from ..auth import FormErrors, IdentityService, safe_redirect_target
from ..dependencies import check_auth, get_identity

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


def _render_errors(request: Request, template: str, result: FormErrors, **context) -> HTMLResponse:
    return templates.TemplateResponse(
        request=request,
        name=template,
        context={"errors": result.errors, **context},
        status_code=result.status_code,
    )


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, redirect_to: Optional[str] = Query(None, alias="redirectTo")):
    """Show login page."""
    if check_auth(request):
        return RedirectResponse(url="/", status_code=303)

    return templates.TemplateResponse(
        request=request,
        name="login.html",
        context={"errors": {}, "redirect_to": safe_redirect_target(redirect_to)},
    )


@router.post("/login")
async def login(
    request: Request,
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    redirect_to: Optional[str] = Form(None, alias="redirectTo"),
    identity: IdentityService = Depends(get_identity),
):
    """Handle login form submission."""
    result = await identity.login(username, password, redirect_to)
    if isinstance(result, FormErrors):
        return _render_errors(
            request, "login.html", result,
            username=username or "",
            redirect_to=safe_redirect_target(redirect_to),
        )
    return result


@router.get("/register", response_class=HTMLResponse)
async def register_page(request: Request, redirect_to: Optional[str] = Query(None, alias="redirectTo")):
    """Show registration page."""
    if check_auth(request):
        return RedirectResponse(url="/", status_code=303)

    return templates.TemplateResponse(
        request=request,
        name="register.html",
        context={"errors": {}, "redirect_to": safe_redirect_target(redirect_to)},
    )


@router.post("/register")
async def register(
    request: Request,
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    redirect_to: Optional[str] = Form(None, alias="redirectTo"),
    identity: IdentityService = Depends(get_identity),
):
    """Handle registration form submission."""
    result = await identity.register(username, password, email, redirect_to)
    if isinstance(result, FormErrors):
        return _render_errors(
            request, "register.html", result,
            username=username or "",
            email=email or "",
            redirect_to=safe_redirect_target(redirect_to),
        )
    return result


@router.post("/logout")
async def logout(request: Request, identity: IdentityService = Depends(get_identity)):
    """Handle logout."""
    return identity.logout(request)


@router.get("/logout")
async def logout_get(request: Request, identity: IdentityService = Depends(get_identity)):
    """Handle logout via GET."""
    return identity.logout(request)
