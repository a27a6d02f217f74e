# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from quill.auth.session import COOKIE_NAME, SessionClaim, SessionTokenService
from quill.auth.users import CredentialStore
from quill.core.utils import slugify
from quill.errors import AppError, AuthenticationError, InternalError, NotFoundError, ValidationError
from quill.infra.db import Database
from quill.logs import logger, setup_logging
from quill.permissions import cookie_settings, install_access_gate, require_page_session, require_session
from quill.schemas import LoginIn, PostIn
from quill.services import post_service
from quill.settings import Settings, load_settings

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

INTERNAL = "Internal server error"


def _internal_error(what: str) -> JSONResponse:
    logger.exception("{} failed", what)
    err = InternalError(INTERNAL)
    return JSONResponse(err.to_dict(), status_code=int(err.status_code))


def _page_error(request: Request, what: str):
    logger.exception("{} failed", what)
    return _render(request, "error.html", {}, status_code=500)


def _render(request: Request, template_name: str, ctx: dict, status_code: int = 200):
    """TemplateResponse wrapper injecting the current session."""
    base_ctx = {"session": getattr(request.state, "session", None)}
    return templates.TemplateResponse(request, template_name, {**base_ctx, **(ctx or {})}, status_code=status_code)


def create_app(
    settings: Optional[Settings] = None,
    *,
    db: Optional[Database] = None,
    credentials: Optional[CredentialStore] = None,
) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    tokens = SessionTokenService(settings.secret_key, ttl_seconds=settings.session_max_age)
    db = db or Database(settings.database_url)
    db.init_schema()
    credentials = credentials or CredentialStore(settings.users_path)

    app = FastAPI(title="Quill")
    app.state.settings = settings
    app.state.tokens = tokens
    app.state.db = db
    app.state.credentials = credentials

    install_access_gate(app, tokens)

    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        return JSONResponse(exc.to_dict(), status_code=int(exc.status_code))

    @app.exception_handler(RequestValidationError)
    async def _bad_body(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = "Invalid request body"
        if errors:
            loc = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
            detail = f"{detail}: {loc} {errors[0].get('msg', '')}".strip()
        return JSONResponse({"error": detail}, status_code=400)

    # ------------------ API: auth ------------------

    @app.post("/api/auth/login")
    def login(body: LoginIn, request: Request):
        if not body.username or not body.password:
            raise ValidationError("Username and password are required")
        try:
            admin = credentials.authenticate(body.username, body.password)
        except Exception:
            return _internal_error("Login")
        if not admin:
            logger.warning("Failed login for '{}'", body.username)
            raise AuthenticationError("Invalid credentials")

        token = tokens.issue(SessionClaim(user_id=admin.id, username=admin.username))
        resp = JSONResponse({"success": True, "message": "Login successful"})
        resp.set_cookie(COOKIE_NAME, token, **cookie_settings(request))
        logger.info("Admin '{}' logged in", admin.username)
        return resp

    @app.post("/api/auth/logout")
    def logout():
        # Only this client forgets the token; it stays valid until it expires.
        resp = JSONResponse({"success": True, "message": "Logged out"})
        resp.delete_cookie(COOKIE_NAME, path="/")
        return resp

    # ------------------ API: posts ------------------

    @app.get("/api/posts")
    def list_posts(claim: SessionClaim = Depends(require_session)):
        try:
            return {"posts": post_service.list_all(db)}
        except AppError:
            raise
        except Exception:
            return _internal_error("List posts")

    @app.post("/api/posts")
    def create_post(body: PostIn, claim: SessionClaim = Depends(require_session)):
        try:
            post_id, slug = post_service.create_post(db, body)
        except AppError:
            raise
        except Exception:
            return _internal_error("Create post")
        return {"success": True, "message": "Post created successfully", "postId": post_id, "slug": slug}

    @app.get("/api/posts/{slug}")
    def get_post(slug: str, claim: SessionClaim = Depends(require_session)):
        try:
            post = post_service.find_by_slug(db, slug)
        except AppError:
            raise
        except Exception:
            return _internal_error("Fetch post")
        if post is None:
            raise NotFoundError(post_service.POST_NOT_FOUND)
        return {"post": post}

    @app.put("/api/posts/{slug}")
    def update_post(slug: str, body: PostIn, claim: SessionClaim = Depends(require_session)):
        try:
            new_slug = post_service.update_post(db, slug, body)
        except AppError:
            raise
        except Exception:
            return _internal_error("Update post")
        return {"success": True, "message": "Post updated successfully", "slug": new_slug}

    @app.get("/api/health")
    def health():
        try:
            db.ping()
        except Exception:
            logger.exception("Database ping failed")
            return JSONResponse({"success": False, "error": "Database connection failed"}, status_code=500)
        return {"success": True, "message": "Database connected!"}

    # ------------------ Pages ------------------

    @app.get("/")
    def home():
        return RedirectResponse(url="/blog", status_code=303)

    @app.get("/blog", response_class=HTMLResponse)
    def blog_index(request: Request):
        try:
            posts = post_service.list_published(db)
        except Exception:
            return _page_error(request, "Blog index")
        return _render(request, "blog.html", {"posts": posts})

    @app.get("/blog/{slug}", response_class=HTMLResponse)
    def blog_post(request: Request, slug: str):
        try:
            post = post_service.find_published_by_slug(db, slug)
        except Exception:
            return _page_error(request, "Blog post")
        if post is None:
            return _render(request, "not_found.html", {}, status_code=404)
        return _render(request, "post.html", {"post": post})

    @app.get("/login", response_class=HTMLResponse)
    def login_page(request: Request):
        return _render(request, "login.html", {})

    @app.get("/admin", response_class=HTMLResponse)
    def admin_dashboard(request: Request, claim: SessionClaim = Depends(require_page_session)):
        try:
            stats = post_service.dashboard_stats(db)
        except Exception:
            return _page_error(request, "Dashboard")
        return _render(request, "dashboard.html", {"stats": stats})

    @app.get("/admin/posts", response_class=HTMLResponse)
    def admin_posts(request: Request, claim: SessionClaim = Depends(require_page_session)):
        try:
            posts = post_service.list_all(db)
        except Exception:
            return _page_error(request, "Admin post list")
        return _render(request, "admin_posts.html", {"posts": posts})

    @app.get("/admin/posts/new", response_class=HTMLResponse)
    def admin_new_post(request: Request, title: str = "", claim: SessionClaim = Depends(require_page_session)):
        # ?title= prefills the form; the slug follows the same rule as the form script.
        draft = {"title": title, "slug": slugify(title), "content": "", "tags": [], "published": False}
        return _render(request, "post_form.html", {"post": draft, "is_new": True})

    @app.get("/admin/posts/{slug}", response_class=HTMLResponse)
    def admin_edit_post(request: Request, slug: str, claim: SessionClaim = Depends(require_page_session)):
        try:
            post = post_service.find_by_slug(db, slug)
        except Exception:
            return _page_error(request, "Edit post page")
        if post is None:
            return _render(request, "not_found.html", {}, status_code=404)
        return _render(request, "post_form.html", {"post": post, "is_new": False})

    return app
