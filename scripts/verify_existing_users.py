"""
Marque comme vérifiés tous les comptes existants.

À lancer une fois après l'activation de la vérification d'email, pour ne pas
bloquer les comptes créés avant.
"""

from onair.db.repositories.users import UserRepository
from onair.db.session import Session, engine, init_db


def main() -> None:
    init_db()
    with Session(engine) as session:
        count = UserRepository(session).mark_all_verified()
    print(f"✅ {count} utilisateur(s) marqué(s) comme vérifié(s).")


if __name__ == "__main__":
    main()
