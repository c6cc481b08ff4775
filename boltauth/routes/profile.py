"""
Profile routes - view and update the signed-in user's account.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from ..auth import FormErrors, IdentityService, UserNotFound
from ..dependencies import get_identity, require_user_id

router = APIRouter(prefix="/profile")
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


def format_datetime(value):
    """Format datetime for display."""
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d %H:%M')
    return "" if value is None else str(value)

templates.env.filters['format_datetime'] = format_datetime


@router.get("", response_class=HTMLResponse)
async def profile_page(
    request: Request,
    user_id: str = Depends(require_user_id),
    identity: IdentityService = Depends(get_identity),
):
    """Show the profile of the signed-in user."""
    try:
        user = await identity.store.get_by_id(user_id)
    except UserNotFound:
        # Session outlived its account
        return RedirectResponse(url="/logout", status_code=303)

    return templates.TemplateResponse(
        request=request,
        name="profile.html",
        context={"user": user.public(), "email": user.email or "", "errors": {}},
    )


@router.post("")
async def update_profile(
    request: Request,
    email: Optional[str] = Form(None),
    current_password: Optional[str] = Form(None, alias="currentPassword"),
    new_password: Optional[str] = Form(None, alias="newPassword"),
    confirm_password: Optional[str] = Form(None, alias="confirmPassword"),
    identity: IdentityService = Depends(get_identity),
):
    """Handle profile form submission."""
    result = await identity.update_profile(
        request,
        email=email,
        current_password=current_password,
        new_password=new_password,
        confirm_password=confirm_password,
    )
    if not isinstance(result, FormErrors):
        return result

    user = await identity.current_user(request)
    if user is None:
        return RedirectResponse(url="/logout", status_code=303)

    return templates.TemplateResponse(
        request=request,
        name="profile.html",
        context={"user": user.public(), "email": email or "", "errors": result.errors},
        status_code=result.status_code,
    )
