"""
Retente la suppression des objets restés orphelins dans le stockage
(ancien fichier remplacé mais dont la suppression avait échoué).

    python scripts/purge_orphans.py --limit 200
"""

import argparse

from onair.core.config import settings
from onair.core.errors import StorageError
from onair.core.logger import setup_logging
from onair.db.repositories.assets import OrphanedObjectRepository
from onair.db.session import Session, engine, init_db
from onair.storage.factory import build_object_store


def purge(limit: int = 100) -> int:
    setup_logging()
    init_db()
    store = build_object_store(settings)
    purged = 0
    with Session(engine) as session:
        repo = OrphanedObjectRepository(session)
        for orphan in repo.list_unresolved(limit=limit):
            try:
                store.delete_object(orphan.object_key)
            except StorageError as e:
                print(f"⚠️ {orphan.object_key} toujours en échec : {e}")
                continue
            repo.mark_resolved(orphan)
            purged += 1
    print(f"✅ {purged} objet(s) orphelin(s) supprimé(s).")
    return purged


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--limit", type=int, default=100)
    purge(parser.parse_args().limit)
