import sys

from onair.db.seed import DEFAULT_SEED_PATH, seed_all
from onair.db.session import Session, engine, init_db


def run_seed(seed_path=DEFAULT_SEED_PATH):
    init_db()
    with Session(engine) as session:
        seed_all(session, seed_path=seed_path)


if __name__ == "__main__":
    run_seed(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_SEED_PATH)
