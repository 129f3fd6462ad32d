import argparse
import logging

from app import app
from embedding_service import batch_generate_embeddings
from services.hierarchy_service import list_owners_missing_embeddings


def backfill(owner_id=None) -> int:
    owners = [owner_id] if owner_id else list_owners_missing_embeddings()
    total = 0
    for owner in owners:
        generated = batch_generate_embeddings(owner)
        print(f"[embed] owner={owner} generated={generated}")
        total += generated
    return total


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Backfill embeddings for bookmarks that have none.")
    parser.add_argument("--owner-id", default=None, help="Limit backfill to a specific owner")
    parser.add_argument("--verbose", action="store_true", help="Log each retry and failure")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    with app.app_context():
        total = backfill(args.owner_id)
    print(f"Backfill complete: {total} bookmark(s) embedded.")


if __name__ == "__main__":
    main()
