"""
Crée (ou promeut) un compte administrateur vérifié.

    python scripts/create_admin.py admin@radio.example "Mot de passe" --name "Admin"
"""

import argparse

from onair.db.repositories.users import UserRepository
from onair.db.session import Session, engine, init_db
from onair.security.password import hash_password


def create_admin(email: str, password: str, name: str = "Admin") -> None:
    init_db()
    with Session(engine) as session:
        repo = UserRepository(session)
        user = repo.get_by_email(email)
        if user:
            repo.update(user, role="admin", email_verified=True, hashed_password=hash_password(password))
            print(f"✅ {user.email} promu administrateur.")
            return
        user = repo.create(
            email=email.strip().lower(),
            hashed_password=hash_password(password),
            name=name,
            role="admin",
            email_verified=True,
        )
        print(f"✅ Administrateur {user.email} créé (id={user.id}).")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", default="Admin")
    args = parser.parse_args()
    create_admin(args.email, args.password, args.name)
