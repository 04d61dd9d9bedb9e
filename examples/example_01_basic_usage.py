"""Example 01: Basic Usage - entkv Fundamentals.

This example demonstrates the fundamental operations:
- Defining an entity schema with the EntityModel base class
- Generating validated operations with generate(prefix, schema)
- Creating, reading, updating and deleting entities inside a transaction
- Listing entities in id order
"""

from pathlib import Path

from entkv import EntityModel, generate, open_store


# Step 1: Define the entity schema
# Every entity has a string id; other fields are ordinary pydantic fields.
class Person(EntityModel):
    """A person in our system."""

    name: str
    age: int
    city: str | None = None


def main():
    """Run the basic usage example."""
    print("=" * 80)
    print("ENTKV BASIC USAGE EXAMPLE")
    print("=" * 80)

    # Step 2: Open a store
    # Use a local path (not /tmp) for the database file.
    Path("tmp").mkdir(exist_ok=True)
    store = open_store("tmp/basic_usage.db")
    print("\n✓ Store opened: tmp/basic_usage.db")

    # Step 3: Generate operations for the "person" prefix
    people = generate("person", Person)

    print("\nAdding people...")
    with store.transaction() as tx:
        people.create(tx, {"id": "alice", "name": "Alice Smith", "age": 32, "city": "Austin"})
        people.create(tx, {"id": "bob", "name": "Bob Johnson", "age": 28})
        people.create(tx, {"id": "carol", "name": "Carol Williams", "age": 35})
    print("✓ Added 3 people")

    print("\n1. Read one person:")
    with store.transaction() as tx:
        print(f"   {people.get(tx, 'alice')}")

    print("\n2. Update only the fields that change:")
    with store.transaction() as tx:
        people.update(tx, {"id": "bob", "city": "New York"})
        print(f"   {people.get(tx, 'bob')}")

    print("\n3. Delete and check:")
    with store.transaction() as tx:
        people.delete(tx, "carol")
        print(f"   carol exists: {people.has(tx, 'carol')}")

    print("\n4. All people in id order:")
    with store.transaction() as tx:
        for person in people.list(tx):
            print(f"   - {person['name']} ({person['id']}), age {person['age']}")

    store.close()
    print("\n" + "=" * 80)
    print("EXAMPLE COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    main()
