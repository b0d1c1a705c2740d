"""
Example walking through the dynahelpers operations on a Movies table.

Start DynamoDB Local on port 8000 and run with IS_OFFLINE=true, or point
AWS_REGION / DYNAMODB_ENDPOINT at a real table keyed by year (N) + title (S).
"""

import logging

from dynahelpers import (
    ConditionalCheckFailedError,
    batch_get_items,
    batch_put_items,
    get_all_items,
    put_item,
    query_items,
    query_items_range,
    query_page,
    update_item,
)

logging.basicConfig(level=logging.INFO)

TABLE = "Movies"

print("Creating test movies...")
batch_put_items(
    TABLE,
    [
        {"year": 2013, "title": "Rush", "rating": 8.1, "genres": {"Biography", "Sport"}},
        {"year": 2013, "title": "Prisoners", "rating": 8.1, "genres": {"Crime", "Drama"}},
        {"year": 2013, "title": "Gravity", "rating": 7.7, "genres": {"Drama", "Sci-Fi"}},
        {"year": 2014, "title": "Interstellar", "rating": 8.6, "genres": {"Sci-Fi"}},
    ],
)

# Create-if-not-exists
try:
    put_item(
        TABLE,
        {"year": 2013, "title": "Rush", "rating": 1.0},
        conditions=[{"operator": "AttributeNotExists", "field": "title"}],
    )
except ConditionalCheckFailedError as e:
    print(f"Already stored: {e.item}")

# Query with a filter on a non-key attribute
good = query_items(
    TABLE,
    "year",
    2013,
    filter_conditions=[{"operator": "GreaterThanEqual", "field": "rating", "value": 8.0}],
)
print("2013 movies rated 8+:", [m["title"] for m in good])

# Sort key prefix
print("Titles starting with G:", query_items_range(TABLE, "year", 2013, "title", "G", fuzzy=True))

# Manual paging
page = query_page(TABLE, "year", 2013, limit=2)
while True:
    print("Page:", [m["title"] for m in page.items])
    if not page.has_more:
        break
    page = query_page(TABLE, "year", 2013, limit=2, start_key=page.last_evaluated_key)

# Update one attribute, drop another
print(update_item(TABLE, {"year": 2013, "title": "Gravity"}, fields={"rating": 7.8, "genres": None}))

print(batch_get_items(TABLE, [{"year": 2014, "title": "Interstellar"}]))
print("Total movies:", len(get_all_items(TABLE)))
