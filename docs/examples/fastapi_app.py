#!/usr/bin/env python3
"""Example FastAPI application guarded by reqhook interceptors.

Registers three interceptors with the process registry:
- audit: logs every /admin request and continues
- require_session: rejects /admin requests without a valid session cookie
- legacy_redirect: permanently redirects old URLs

Run with:
    cd docs/examples && uvicorn fastapi_app:app --reload
"""

import re

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from rich.console import Console

from reqhook import Continue, interceptor
from reqhook.middleware import InterceptorMiddleware

console = Console()


@interceptor(pattern=r"^/admin", priority=0)
async def audit(request: Request, context=None):
    """Log admin access, then let later interceptors decide."""
    console.print(f"[dim]admin access:[/dim] {request.url.path}")
    return Continue


@interceptor(pattern=r"^/admin", priority=1)
async def require_session(request: Request, context=None):
    """Reject admin requests lacking a valid-* session cookie."""
    if re.match(r"^valid-", request.cookies.get("session", "")):
        return None
    return JSONResponse({"error": "forbidden"}, status_code=403)


@interceptor(pattern=[r"^/old/", r"^/legacy/"], priority=10)
def legacy_redirect(request: Request, context=None):
    """Redirect legacy paths onto the new tree."""
    new_path = re.sub(r"^/(old|legacy)/", "/", request.url.path)
    return RedirectResponse(new_path, status_code=308)


app = FastAPI()
app.add_middleware(InterceptorMiddleware)


@app.get("/admin/dashboard")
async def dashboard() -> dict:
    return {"page": "dashboard"}


@app.get("/{path:path}")
async def catch_all(path: str) -> dict:
    return {"path": path}
