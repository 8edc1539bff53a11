# ABOUTME: Canned Hardcover GraphQL search responses for testing.
# ABOUTME: Covers object-valued results, string-encoded results, and GraphQL errors.

import json

ATOMIC_HABITS_DOCUMENT = {
    "id": 386446,
    "title": "Atomic Habits",
    "author_names": ["James Clear"],
    "isbns": ["9780735211292", "0735211299"],
    "image": {"url": "https://assets.hardcover.app/edition/30545380/atomic-habits.jpeg"},
    "description": (
        "No matter your goals, Atomic Habits offers a proven framework for improving "
        "every day. James Clear reveals practical strategies that will teach you exactly "
        "how to form good habits, break bad ones, and master the tiny behaviors that lead "
        "to remarkable results."
    ),
    "genres": ["Self Help", "Nonfiction", "Psychology"],
    "release_year": 2018,
    "pages": 320,
}

SEARCH_RESPONSE = {
    "data": {
        "search": {
            "results": {
                "found": 1,
                "hits": [{"document": ATOMIC_HABITS_DOCUMENT}],
            }
        }
    }
}

SEARCH_RESPONSE_STRING_RESULTS = {
    "data": {
        "search": {
            "results": json.dumps({"found": 1, "hits": [{"document": ATOMIC_HABITS_DOCUMENT}]})
        }
    }
}

SEARCH_RESPONSE_EMPTY = {"data": {"search": {"results": {"found": 0, "hits": []}}}}

ERROR_RESPONSE = {"errors": [{"message": "Unable to verify token"}]}
