"""
Example data seeding with batched writes.

Every call below is one pipelined round trip, however many entries it
carries. Run it from examples/simple with a Redis server listening on
127.0.0.1:6379:

    DJANGO_SETTINGS_MODULE=example.settings python -m example.startup
"""

# ruff: noqa: T201
# T201: print statements are intentional for visibility

from datetime import timedelta

import django


def get_sample_profiles() -> dict:
    """Sample values for plain string keys."""
    return {
        "user:1": {"name": "Alice", "email": "alice@example.com", "role": "admin"},
        "user:2": {"name": "Bob", "email": "bob@example.com", "role": "user"},
        "user:3": {"name": "Charlie", "email": "charlie@example.com", "role": "user"},
        "greeting": "Hello, World!",
        "counter": 42,
    }


def seed(alias: str = "default") -> None:
    from django_batchex import get_batch_submitter
    from django_batchex.exceptions import BatchSubmissionError

    submitter = get_batch_submitter(alias)
    print(f"  [{alias}] Seeding through {submitter!r}")

    try:
        submitter.set_values(get_sample_profiles())
        submitter.set_values_with_ttl(
            [
                ("session:abc123", {"user_id": 1}, timedelta(minutes=30)),
                ("session:def456", {"user_id": 2}, timedelta(minutes=30)),
            ],
        )
        submitter.right_push_list_values([("events", ["signup", "login", "purchase"])])
        submitter.add_set_values([("tags", ["python", "django", "batchex"])])
        submitter.put_hash_values(
            [
                ("profile:1", "email", "alice@example.com"),
                ("profile:1", "phone", "555-0100"),
                ("profile:1", "name", "Alice"),
            ],
        )
        submitter.delete_hash_values([("profile:1", "email"), ("profile:1", "phone")])
        submitter.add_sorted_set_values([("leaderboard", 10.5, "alice"), ("leaderboard", 20.0, "bob")])
    except BatchSubmissionError as e:
        print(f"  [{alias}] Seeding failed: {e}")
        return

    print(f"  [{alias}] Done")


if __name__ == "__main__":
    django.setup()
    seed()
