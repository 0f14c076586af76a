from __future__ import annotations

import traceback
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.database import Database
from pymongo.errors import PyMongoError

from showhub import __version__
from showhub.auth import bootstrap_admin_if_needed, create_user, require_admin, require_moderator, require_token
from showhub.auth.crud import (
    get_role,
    get_user_by_email,
    list_users,
    normalize_email,
    set_user_role,
    update_own_profile,
)
from showhub.auth.deps import get_cfg, get_db
from showhub.auth.security import create_access_token
from showhub.billing.payments import PaymentProviderError, create_payment_intent, to_minor_units
from showhub.catalog import coupons, products, reports
from showhub.catalog.stats import admin_stats
from showhub.config import Config, load_config
from showhub.db import connect, init_db, parse_object_id, public_doc
from showhub.models import Identity, ProductStatus, Role, VoteKind


def _debug(msg: str) -> None:
    print(f"[api] {msg}")


# Keeps skip = page * limit well inside BSON int64.
MAX_PAGE_INDEX = 100_000


def _object_id(value: str) -> ObjectId:
    oid = parse_object_id(value)
    if oid is None:
        raise HTTPException(status_code=400, detail="invalid_id")
    return oid


def _page_size(cfg: Config, limit: Optional[int]) -> int:
    if limit is None:
        return int(cfg.DEFAULT_PAGE_SIZE)
    return max(1, min(int(limit), int(cfg.MAX_PAGE_SIZE)))


def _domain_error(e: Exception) -> HTTPException:
    """Translate a domain-level failure code into an HTTP error."""
    detail = str(e)
    if isinstance(e, LookupError):
        return HTTPException(status_code=404, detail=detail)
    if isinstance(e, PermissionError):
        return HTTPException(status_code=403, detail=detail)
    if detail.endswith("_exists"):
        return HTTPException(status_code=409, detail=detail)
    return HTTPException(status_code=400, detail=detail)


def _load_product(db: Database, product_id: str) -> Dict[str, Any]:
    doc = products.get_product(db, _object_id(product_id))
    if doc is None:
        raise HTTPException(status_code=404, detail="product_not_found")
    return doc


def _require_owner_or_staff(db: Database, identity: Identity, product: Dict[str, Any]) -> None:
    if product.get("ownerEmail") == identity.email:
        return
    if get_role(db, identity.email) in (Role.MODERATOR, Role.ADMIN):
        return
    raise HTTPException(status_code=403, detail="not_product_owner")


# -----------------------------
# Request bodies
# -----------------------------


class CreateUserRequest(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    photo: Optional[str] = None


class UpdateOwnUserRequest(BaseModel):
    subscriptionId: Optional[str] = None
    role: Optional[Role] = None


class UpdateRoleRequest(BaseModel):
    role: Role


class ProductRequest(BaseModel):
    name: Optional[str] = None
    tags: Optional[List[str]] = None
    description: Optional[str] = None
    image: Optional[str] = None
    externalLink: Optional[str] = None


class StatusRequest(BaseModel):
    status: ProductStatus


class ReviewRequest(BaseModel):
    name: Optional[str] = None
    comment: str
    rating: int


class ReportRequest(BaseModel):
    reason: Optional[str] = None


class CouponRequest(BaseModel):
    code: Optional[str] = None
    discount: Optional[int] = None
    description: Optional[str] = None
    expiresAt: Optional[str] = None


class PaymentIntentRequest(BaseModel):
    amount: float
    couponCode: Optional[str] = None


def create_app(cfg: Config | None = None, database: Database | None = None) -> FastAPI:
    """Build the API.

    The config and the store handle are created once here and hung off
    ``app.state``; auth dependencies and routes read them from there.
    """
    cfg = cfg or load_config()
    db = database if database is not None else connect(cfg)

    app = FastAPI(title="Tech's Show Hub", version=__version__)
    app.state.cfg = cfg
    app.state.db = db

    _cors_origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if _cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=_cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.on_event("startup")
    def _on_startup() -> None:
        if not cfg.AUTH_JWT_SECRET:
            _debug("AUTH_JWT_SECRET is not set; /jwt and every protected route will fail")

        init_db(db)

        boot = bootstrap_admin_if_needed(db, cfg)
        if boot:
            _debug(f"Bootstrapped admin user: email={boot.get('email')} role={boot.get('role')}")

    # -----------------------------
    # Error handlers
    # -----------------------------

    @app.exception_handler(PyMongoError)
    async def _store_error(request: Request, exc: PyMongoError) -> JSONResponse:
        _debug(f"store error on {request.method} {request.url.path}: {exc!r}")
        return JSONResponse(status_code=503, content={"detail": "store_error"})

    @app.exception_handler(PaymentProviderError)
    async def _provider_error(request: Request, exc: PaymentProviderError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": "payment_provider_error"})

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        trace = "".join(traceback.format_exception(exc))
        _debug(f"unhandled error on {request.method} {request.url.path}:\n{trace}")
        return JSONResponse(status_code=500, content={"detail": "internal_error"})

    # -----------------------------
    # Health
    # -----------------------------

    @app.get("/")
    def root() -> str:
        return "Tech's Show Hub is running."

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok"}

    # -----------------------------
    # Auth
    # -----------------------------

    @app.post("/jwt")
    def issue_token(payload: Dict[str, Any] = Body(...), cfg: Config = Depends(get_cfg)) -> Dict[str, Any]:
        """Sign a token for the posted identity.

        The caller (the frontend's identity provider) has already verified
        the email; nothing is checked here beyond its presence.
        """
        email = normalize_email(payload.get("email"))
        if not email:
            raise HTTPException(status_code=400, detail="email_required")

        claims = dict(payload)
        claims["email"] = email
        try:
            token = create_access_token(
                secret=cfg.AUTH_JWT_SECRET,
                claims=claims,
                expires_minutes=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES),
            )
        except ValueError:
            raise HTTPException(status_code=500, detail="server_config_missing")
        return {"token": token}

    # -----------------------------
    # Users
    # -----------------------------

    @app.get("/users")
    def get_users(_admin: Identity = Depends(require_admin), db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
        return list_users(db)

    @app.get("/user")
    def get_user(email: str = Query(...), db: Database = Depends(get_db)) -> Dict[str, Any]:
        row = get_user_by_email(db, email)
        if row is None:
            raise HTTPException(status_code=404, detail="user_not_found")
        return public_doc(row)

    @app.post("/user")
    def post_user(
        payload: CreateUserRequest,
        identity: Identity = Depends(require_token),
        db: Database = Depends(get_db),
        cfg: Config = Depends(get_cfg),
    ) -> Dict[str, Any]:
        if payload.email and normalize_email(payload.email) != identity.email:
            raise HTTPException(status_code=403, detail="email_mismatch")
        try:
            return create_user(db, cfg, email=identity.email, name=payload.name, photo=payload.photo)
        except ValueError as e:
            raise _domain_error(e)

    @app.patch("/user")
    def patch_own_user(
        payload: UpdateOwnUserRequest,
        identity: Identity = Depends(require_token),
        db: Database = Depends(get_db),
        cfg: Config = Depends(get_cfg),
    ) -> Dict[str, Any]:
        """Subscribe the caller. Role changes are admin-only, via PATCH /user/{user_id}."""
        try:
            return update_own_profile(
                db,
                cfg,
                email=identity.email,
                subscription_id=(payload.subscriptionId or "").strip() or None,
                role=payload.role,
            )
        except (ValueError, LookupError, PermissionError) as e:
            raise _domain_error(e)

    @app.patch("/user/{user_id}")
    def patch_user_role(
        user_id: str,
        payload: UpdateRoleRequest,
        _admin: Identity = Depends(require_admin),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        row = set_user_role(db, _object_id(user_id), payload.role)
        if row is None:
            raise HTTPException(status_code=404, detail="user_not_found")
        return row

    @app.get("/user/products")
    def my_products(identity: Identity = Depends(require_token), db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
        return products.list_products_by_owner(db, identity.email)

    # -----------------------------
    # Products
    # -----------------------------

    @app.get("/products")
    def get_products(
        page: int = Query(0, ge=0, le=MAX_PAGE_INDEX),
        limit: Optional[int] = Query(None, ge=1),
        search: Optional[str] = None,
        db: Database = Depends(get_db),
        cfg: Config = Depends(get_cfg),
    ) -> Dict[str, Any]:
        return products.list_products(db, page=page, limit=_page_size(cfg, limit), search=search)

    @app.get("/trending")
    def get_trending(db: Database = Depends(get_db), cfg: Config = Depends(get_cfg)) -> List[Dict[str, Any]]:
        return products.trending_products(db, limit=int(cfg.TRENDING_LIMIT))

    @app.get("/product/{product_id}")
    def get_product(product_id: str, db: Database = Depends(get_db)) -> Dict[str, Any]:
        return public_doc(_load_product(db, product_id))

    @app.post("/product")
    def post_product(
        payload: ProductRequest,
        identity: Identity = Depends(require_token),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        try:
            return products.create_product(db, owner_email=identity.email, fields=payload.model_dump())
        except (ValueError, LookupError, PermissionError) as e:
            raise _domain_error(e)

    @app.patch("/product/update/{product_id}")
    def patch_product(
        product_id: str,
        payload: ProductRequest,
        identity: Identity = Depends(require_token),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        doc = _load_product(db, product_id)
        _require_owner_or_staff(db, identity, doc)
        try:
            return products.update_product(db, doc["_id"], payload.model_dump(exclude_unset=True))
        except ValueError as e:
            raise _domain_error(e)

    @app.patch("/product/vote/{product_id}")
    def vote_product(
        product_id: str,
        vote: str = Query(...),
        email: Optional[str] = None,
        identity: Identity = Depends(require_token),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        try:
            kind = VoteKind((vote or "").strip().lower())
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid_vote")
        if email is not None and normalize_email(email) != identity.email:
            raise HTTPException(status_code=403, detail="email_mismatch")

        doc = _load_product(db, product_id)
        return products.vote_product(db, doc["_id"], email=identity.email, kind=kind)

    @app.patch("/report/{product_id}")
    def report_product(
        product_id: str,
        payload: Optional[ReportRequest] = None,
        identity: Identity = Depends(require_token),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        doc = _load_product(db, product_id)
        return reports.report_product(db, doc, email=identity.email, reason=payload.reason if payload else None)

    @app.delete("/product/{product_id}")
    def delete_product(
        product_id: str,
        identity: Identity = Depends(require_token),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        doc = _load_product(db, product_id)
        _require_owner_or_staff(db, identity, doc)
        res = products.delete_product(db, doc["_id"])
        if res is None:
            raise HTTPException(status_code=404, detail="product_not_found")
        return res

    @app.post("/review/{product_id}")
    def post_review(
        product_id: str,
        payload: ReviewRequest,
        identity: Identity = Depends(require_token),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        doc = _load_product(db, product_id)
        try:
            return products.add_review(
                db,
                doc["_id"],
                email=identity.email,
                name=payload.name or str(identity.claims.get("name") or ""),
                comment=payload.comment,
                rating=payload.rating,
            )
        except ValueError as e:
            raise _domain_error(e)

    # -----------------------------
    # Moderation
    # -----------------------------

    @app.get("/review-queue")
    def get_review_queue(
        page: int = Query(0, ge=0, le=MAX_PAGE_INDEX),
        limit: Optional[int] = Query(None, ge=1),
        _mod: Identity = Depends(require_moderator),
        db: Database = Depends(get_db),
        cfg: Config = Depends(get_cfg),
    ) -> List[Dict[str, Any]]:
        return products.review_queue(db, page=page, limit=_page_size(cfg, limit))

    @app.patch("/product/status/{product_id}")
    def patch_product_status(
        product_id: str,
        payload: StatusRequest,
        _mod: Identity = Depends(require_moderator),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        doc = _load_product(db, product_id)
        return products.set_status(db, doc["_id"], payload.status)

    @app.get("/reports")
    def get_reports(_mod: Identity = Depends(require_moderator), db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
        return reports.list_reports(db)

    @app.delete("/report/{product_id}")
    def dismiss_report(
        product_id: str,
        _mod: Identity = Depends(require_moderator),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        return reports.dismiss_reports(db, _object_id(product_id))

    # -----------------------------
    # Coupons
    # -----------------------------

    @app.get("/coupons")
    def get_coupons(db: Database = Depends(get_db)) -> List[Dict[str, Any]]:
        return coupons.list_coupons(db)

    @app.get("/coupon/code/{code}")
    def get_coupon_by_code(code: str, db: Database = Depends(get_db)) -> Dict[str, Any]:
        row = coupons.get_coupon_by_code(db, code)
        if row is None:
            raise HTTPException(status_code=404, detail="coupon_not_found")
        out = public_doc(row)
        out["active"] = coupons.is_active(row)
        return out

    @app.get("/coupon/{coupon_id}")
    def get_coupon(coupon_id: str, db: Database = Depends(get_db)) -> Dict[str, Any]:
        row = coupons.get_coupon(db, _object_id(coupon_id))
        if row is None:
            raise HTTPException(status_code=404, detail="coupon_not_found")
        return public_doc(row)

    @app.post("/coupon")
    def post_coupon(
        payload: CouponRequest,
        _admin: Identity = Depends(require_admin),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        try:
            return coupons.create_coupon(db, payload.model_dump())
        except ValueError as e:
            raise _domain_error(e)

    @app.patch("/coupon/{coupon_id}")
    def patch_coupon(
        coupon_id: str,
        payload: CouponRequest,
        _admin: Identity = Depends(require_admin),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        oid = _object_id(coupon_id)
        try:
            res = coupons.update_coupon(db, oid, payload.model_dump(exclude_unset=True))
        except ValueError as e:
            raise _domain_error(e)
        if res["matchedCount"] == 0:
            raise HTTPException(status_code=404, detail="coupon_not_found")
        return res

    @app.delete("/coupon/{coupon_id}")
    def delete_coupon(
        coupon_id: str,
        _admin: Identity = Depends(require_admin),
        db: Database = Depends(get_db),
    ) -> Dict[str, Any]:
        res = coupons.delete_coupon(db, _object_id(coupon_id))
        if res["deletedCount"] == 0:
            raise HTTPException(status_code=404, detail="coupon_not_found")
        return res

    # -----------------------------
    # Payments (Stripe)
    # -----------------------------

    @app.post("/payment-intent")
    def post_payment_intent(
        payload: PaymentIntentRequest,
        identity: Identity = Depends(require_token),
        db: Database = Depends(get_db),
        cfg: Config = Depends(get_cfg),
    ) -> Dict[str, Any]:
        discount = 0
        code: Optional[str] = None
        if payload.couponCode:
            coupon = coupons.get_coupon_by_code(db, payload.couponCode)
            if coupon is None or not coupons.is_active(coupon):
                raise HTTPException(status_code=400, detail="invalid_coupon")
            discount = int(coupon.get("discount") or 0)
            code = str(coupon["code"])

        try:
            amount_minor = to_minor_units(payload.amount, discount_percent=discount)
        except ValueError as e:
            raise _domain_error(e)

        try:
            return create_payment_intent(cfg, amount_minor=amount_minor, email=identity.email, coupon_code=code)
        except RuntimeError as e:
            # Stripe missing / not configured.
            raise HTTPException(status_code=501, detail=str(e))

    # -----------------------------
    # Admin
    # -----------------------------

    @app.get("/admin-stats")
    def get_admin_stats(_admin: Identity = Depends(require_admin), db: Database = Depends(get_db)) -> Dict[str, Any]:
        return admin_stats(db)

    return app
