"""Example 02: Cursor Pagination and Validation Errors.

This example demonstrates:
- Paging through entities with ListOptions(start_at_id=..., limit=...)
- Listing ids only with list_ids()
- Reading the error tree from ValidationError
- Skipping invalid stored values with on_invalid="skip"
"""

from entkv import EntityModel, ListOptions, MemoryStore, ValidationError, generate


class Article(EntityModel):
    """Blog article."""

    title: str
    views: int = 0


def main():
    """Run the pagination example."""
    print("=" * 80)
    print("EXAMPLE 02: PAGINATION AND VALIDATION ERRORS")
    print("=" * 80)

    store = MemoryStore()
    articles = generate("article", Article)

    with store.transaction() as tx:
        for i in range(10):
            articles.create(tx, {"id": f"a{i:02d}", "title": f"Article {i}"})

    # Section 1: cursor pagination
    # Pass the last id seen plus one page; the start id is inclusive,
    # so each page asks for one extra entity and drops the first.
    print("\nPages of 4:")
    page_size = 4
    cursor = None
    with store.transaction() as tx:
        while True:
            page = articles.list_ids(tx, ListOptions(start_at_id=cursor, limit=page_size + 1))
            if cursor is not None:
                page = page[1:]
            if not page:
                break
            print(f"   {page[:page_size]}")
            cursor = page[:page_size][-1]

    # Section 2: validation errors
    print("\nInvalid create:")
    try:
        with store.transaction() as tx:
            articles.create(tx, {"id": "bad", "views": "many"})
    except ValidationError as e:
        print(f"   {e}")
        print(f"   tree: {e.format()}")

    # Section 3: skipping invalid stored values
    with store.transaction() as tx:
        tx.put("article/a03", {"id": "a03"})
    lenient = generate("article", Article, on_invalid="skip")
    with store.transaction() as tx:
        ids = [a["id"] for a in lenient.list(tx, {"limit": 5})]
    print(f"\nFirst 5 valid articles: {ids}")

    print("\n" + "=" * 80)
    print("EXAMPLE COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    main()
