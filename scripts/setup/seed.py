# scripts/setup/seed.py
"""
Seed a local database with a superadmin, a manager, one center, the usual
container types and a handful of containers.
Usage: python scripts/setup/seed.py --password secret123
"""

import argparse
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from datetime import datetime

from wastetrack.constants import ContainerState, Role
from wastetrack.database import SessionLocal, create_tables
from wastetrack.models.center import RecyclingCenter
from wastetrack.models.container import Container
from wastetrack.models.container_type import ContainerType
from wastetrack.models.user import User
from wastetrack.services.auth_service import hash_password

TYPES = [
    ("Verre", "🍾", "#2E7D32"),
    ("Papier / Carton", "📦", "#1565C0"),
    ("Déchets verts", "🌿", "#558B2F"),
    ("Encombrants", "🛋️", "#6D4C41"),
]


def _user(db, email, password, role, center_ids=None):
    user = db.query(User).filter(User.email == email).first()
    if user:
        print(f"   · {email} already exists")
        return user
    now = datetime.utcnow()
    user = User(email=email, password_hash=hash_password(password), role=role.value,
                center_ids=center_ids or [], locale="fr", created_at=now, updated_at=now)
    db.add(user)
    db.commit()
    print(f"   ✓ {role.value}: {email}")
    return user


def main(password: str, containers_per_type: int):
    create_tables()
    db = SessionLocal()
    try:
        now = datetime.utcnow()
        print("👤 Users")
        _user(db, "admin@wastetrack.local", password, Role.SUPERADMIN)

        print("🏭 Center")
        center = db.query(RecyclingCenter).filter(RecyclingCenter.name == "Déchèterie Centrale").first()
        if not center:
            center = RecyclingCenter(name="Déchèterie Centrale", address="1 rue du Tri, 75000 Paris",
                                     lat=48.8566, lng=2.3522, public_visibility=True,
                                     opening_hours=[{"day": "mon", "open": "08:00", "close": "18:00"}],
                                     active=True, created_at=now, updated_at=now)
            db.add(center)
            db.commit()
        print(f"   ✓ {center.name} (id={center.id})")
        _user(db, "manager@wastetrack.local", password, Role.MANAGER, center_ids=[center.id])

        print("🏷️  Types & containers")
        for label, icon, color in TYPES:
            ctype = db.query(ContainerType).filter(ContainerType.label == label).first()
            if not ctype:
                ctype = ContainerType(label=label, icon=icon, color=color, created_at=now)
                db.add(ctype)
                db.commit()
            existing = db.query(Container).filter(Container.center_id == center.id,
                                                  Container.type_id == ctype.id).count()
            for n in range(existing + 1, containers_per_type + 1):
                db.add(Container(center_id=center.id, type_id=ctype.id, label=f"{label} #{n}",
                                 state=ContainerState.EMPTY.value, active=True,
                                 created_at=now, updated_at=now))
            db.commit()
            print(f"   ✓ {label}: {max(existing, containers_per_type)} container(s)")
    finally:
        db.close()
    print("\n🎉 Seed complete")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--password", default="changeme123")
    parser.add_argument("--containers-per-type", type=int, default=3)
    args = parser.parse_args()
    main(args.password, args.containers_per_type)
