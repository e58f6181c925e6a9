import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from models.errors import DuplicateNameError
from services.locking import ReadWriteLock


# =============================================================================
# ReadWriteLock
# =============================================================================

class TestReadWriteLock:

    def test_readers_share_the_lock(self):
        lock = ReadWriteLock()
        both_inside = threading.Barrier(2, timeout=5)
        both_counted = threading.Barrier(2, timeout=5)
        counts = []

        def reader():
            with lock.read():
                both_inside.wait()
                counts.append(lock.readers)
                both_counted.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(5)

        assert counts == [2, 2]
        assert lock.readers == 0

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        entered = threading.Event()

        def reader():
            with lock.read():
                entered.set()

        with lock.write():
            thread = threading.Thread(target=reader)
            thread.start()
            assert not entered.wait(0.2)

        assert entered.wait(5)
        thread.join(5)

    def test_reader_excludes_writer(self):
        lock = ReadWriteLock()
        entered = threading.Event()

        def writer():
            with lock.write():
                entered.set()

        with lock.read():
            thread = threading.Thread(target=writer)
            thread.start()
            assert not entered.wait(0.2)

        assert entered.wait(5)
        thread.join(5)

    def test_exclusive_reads(self):
        lock = ReadWriteLock(shared_reads=False)
        entered = threading.Event()

        def reader():
            with lock.read():
                entered.set()

        with lock.read():
            thread = threading.Thread(target=reader)
            thread.start()
            assert not entered.wait(0.2)

        assert entered.wait(5)
        thread.join(5)

    def test_lock_is_released_on_error(self):
        lock = ReadWriteLock()

        with pytest.raises(RuntimeError):
            with lock.write():
                raise RuntimeError("boom")

        with lock.read():
            assert lock.readers == 1


# =============================================================================
# Catalog under concurrent use
# =============================================================================

def test_concurrent_creates_all_land(file_catalog):
    def create_batch(worker):
        return [file_catalog.create_ingredient(f"Spice {worker}-{n}") for n in range(10)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        batches = list(pool.map(create_batch, range(8)))

    created_ids = {ingredient.id for batch in batches for ingredient in batch}
    assert len(created_ids) == 80
    assert len(file_catalog.queries.list_ingredients()) == 80


def test_concurrent_duplicate_create_has_one_winner(file_catalog):
    start = threading.Barrier(8, timeout=5)

    def create():
        start.wait()
        try:
            return file_catalog.create_recipe(name="Pizza")
        except DuplicateNameError as e:
            return e

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = [f.result() for f in [pool.submit(create) for _ in range(8)]]

    winners = [r for r in results if not isinstance(r, DuplicateNameError)]
    assert len(winners) == 1
    assert [r.name for r in file_catalog.queries.list_recipes()] == ["Pizza"]


def test_readers_never_see_half_applied_mutations(file_catalog):
    ids = [file_catalog.create_ingredient(name).id for name in ("Flour", "Water", "Salt")]
    stable = file_catalog.create_recipe(name="Stable", ingredients=[
        {"ingredient_id": i, "quantity": "v0"} for i in ids
    ])
    stop = threading.Event()
    problems = []

    def writer():
        try:
            for version in range(1, 30):
                temp = file_catalog.create_recipe(name="Temp", ingredients=[
                    {"ingredient_id": i, "quantity": "1"} for i in ids
                ])
                file_catalog.set_recipe_ingredients(stable.id, [
                    {"ingredient_id": i, "quantity": f"v{version}"} for i in reversed(ids)
                ])
                file_catalog.delete_recipe(temp.id)
        finally:
            stop.set()

    def reader():
        while not stop.is_set():
            for recipe in file_catalog.queries.list_recipes():
                quantities = {line.quantity for line in recipe.ingredients}
                if len(recipe.ingredients) != 3 or len(quantities) != 1:
                    problems.append((recipe.name, recipe.ingredients))
                if [line.position for line in recipe.ingredients] != [0, 1, 2]:
                    problems.append((recipe.name, recipe.ingredients))

    readers = [threading.Thread(target=reader) for _ in range(3)]
    writing = threading.Thread(target=writer)
    for thread in readers:
        thread.start()
    writing.start()
    writing.join(60)
    for thread in readers:
        thread.join(60)

    assert problems == []
    final = file_catalog.queries.get_recipe(stable.id)
    assert {line.quantity for line in final.ingredients} == {"v29"}
    assert [r.name for r in file_catalog.queries.list_recipes()] == ["Stable"]
