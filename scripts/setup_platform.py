#!/usr/bin/env python3
# scripts/setup_platform.py
"""
Tenant setup for the visit & queue backend.
This script is safe to run many times (idempotent).

Design notes:
- Organization creation is idempotent on subdomain:
  - if it exists -> name/custom domain are updated and it is re-activated
  - if missing -> it is created
- A staff user is matched on (email, tenant) and created if missing.
- --print-token issues a bearer token for that user, for reception screens or
  smoke tests (TV boards need no token, only the tenant host/header).

Examples:
  # Only ensure the tenant
  python -m scripts.setup_platform --subdomain apollo --name "Apollo Hospital"

  # Tenant with a custom domain, a receptionist, and a token for them
  python -m scripts.setup_platform --subdomain apollo --name "Apollo Hospital" \
    --custom-domain queue.apollo.in --email front@apollo.in --role RECEPTIONIST --print-token
"""

from __future__ import annotations

import argparse
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.database import SessionLocal
from app.core.security import create_access_token
from app.models.organization import Organization, SubscriptionStatus
from app.models.user import RoleName, User

logger = logging.getLogger(__name__)


def ensure_organization(
    db: Session,
    *,
    subdomain: str,
    name: str,
    custom_domain: str | None = None,
) -> Organization:
    """
    Ensure an active organization with this subdomain exists.
    """
    subdomain = subdomain.strip().lower()
    custom_domain = custom_domain.strip().lower() if custom_domain else None

    org = db.query(Organization).filter(Organization.subdomain == subdomain).first()
    if org:
        org.name = name
        if custom_domain:
            org.custom_domain = custom_domain
        org.is_active = True
        db.commit()
        print(f"Organization ensured (updated if needed): {subdomain}")
        return org

    org = Organization(
        name=name,
        subdomain=subdomain,
        custom_domain=custom_domain,
        is_active=True,
        subscription_status=SubscriptionStatus.ACTIVE.value,
    )
    db.add(org)
    db.commit()
    db.refresh(org)
    print(f"Organization created: {subdomain}")
    return org


def ensure_staff_user(
    db: Session,
    org: Organization,
    *,
    email: str,
    role: RoleName,
    first_name: str = "Front",
    last_name: str = "Desk",
) -> User:
    """
    Ensure an active staff user with this email exists in the organization.
    An existing user keeps their names but gets the requested role.
    """
    email = email.strip().lower()
    user = db.query(User).filter(User.tenant_id == org.id, User.email == email).first()
    if user:
        user.role = role
        user.is_active = True
        db.commit()
        print(f"{role.value} ensured (updated if needed): {email}")
        return user

    user = User(
        tenant_id=org.id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"{role.value} created: {email}")
    return user


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Visit & queue backend tenant setup")
    p.add_argument("--subdomain", required=True, help="Tenant subdomain (apollo in apollo.example.com)")
    p.add_argument("--name", required=True, help="Organization display name")
    p.add_argument("--custom-domain", type=str, default=None, help="Optional full host served for this tenant")

    # Optional staff user
    p.add_argument("--email", type=str, help="Staff user email (created if missing)")
    p.add_argument(
        "--role",
        type=RoleName,
        default=RoleName.RECEPTIONIST,
        choices=list(RoleName),
        help="Staff user role (default RECEPTIONIST)",
    )
    p.add_argument("--first-name", type=str, default="Front")
    p.add_argument("--last-name", type=str, default="Desk")
    p.add_argument("--print-token", action="store_true", help="Print a bearer token for the staff user")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    if args.print_token and not args.email:
        raise SystemExit("--print-token needs --email (the token is issued for that user).")

    db: Session = SessionLocal()
    try:
        org = ensure_organization(
            db,
            subdomain=args.subdomain,
            name=args.name,
            custom_domain=args.custom_domain,
        )

        if args.email:
            user = ensure_staff_user(
                db,
                org,
                email=args.email,
                role=args.role,
                first_name=args.first_name,
                last_name=args.last_name,
            )
            if args.print_token:
                token = create_access_token(
                    subject=str(user.id),
                    tenant_id=str(org.id),
                    role=user.role.value,
                )
                print(token)

    except SQLAlchemyError:
        db.rollback()
        logger.exception("Tenant setup failed")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
