"""
Sloka API — Seed CLI Tests
===========================

What:  Tests for loading, validating and replacing the verse collection.
How:   File handling is tested against tmp_path; seeding runs against a real
       temporary SQLite database; the operator prompt is an injected
       input function.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from sloka_api.main import create_app
from sloka_api.schemas.verse import VerseIn
from sloka_api.seed import (
    CONFIRM_PROMPT,
    SeedError,
    build_parser,
    confirm,
    load_entries,
    main,
    run_seed,
    seed,
    validate_entries,
)
from sloka_api.services.verse_store import VerseStore


def _entries(*slokas):
    return [VerseIn(sloka=s, source="Test Source") for s in slokas]


def _never_asked(prompt):
    raise AssertionError(f"unexpected prompt: {prompt}")


async def _stored_slokas(database):
    async with database.session() as session:
        return [v.sloka for v in await VerseStore(session).find_page(skip=0, take=50)]


# ══════════════════════════════════════════════════════════════════════════
# Seed file loading and validation
# ══════════════════════════════════════════════════════════════════════════


class TestLoadEntries:

    def test_reads_json_array(self, tmp_path):
        path = tmp_path / "quotes.json"
        path.write_text(json.dumps([{"sloka": "ॐ"}]), encoding="utf-8")
        assert load_entries(path) == [{"sloka": "ॐ"}]

    def test_missing_file(self, tmp_path):
        with pytest.raises(SeedError, match="file not found"):
            load_entries(tmp_path / "absent.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "quotes.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(SeedError, match="not valid JSON"):
            load_entries(path)

    def test_top_level_must_be_array(self, tmp_path):
        path = tmp_path / "quotes.json"
        path.write_text(json.dumps({"sloka": "ॐ"}), encoding="utf-8")
        with pytest.raises(SeedError, match="JSON array"):
            load_entries(path)


class TestValidateEntries:

    def test_valid_entries_are_trimmed(self):
        valid, skipped = validate_entries([
            {"sloka": "  सत्यमेव जयते  ", "source": "  Mundaka Upanishad 3.1.6 ", "translation": ""},
        ])

        assert skipped == 0
        assert valid[0].sloka == "सत्यमेव जयते"
        assert valid[0].source == "Mundaka Upanishad 3.1.6"
        assert valid[0].translation is None

    def test_invalid_entries_are_skipped_and_counted(self):
        raw = [
            {"sloka": "first"},
            {"translation": "missing sloka"},
            {"sloka": "   "},
            "not an object",
            {"sloka": "x" * 1001},
            {"sloka": "ok", "source": "s" * 201},
            {"sloka": "last", "unknown": "ignored"},
        ]

        valid, skipped = validate_entries(raw)

        assert [v.sloka for v in valid] == ["first", "last"]
        assert skipped == 5

    def test_length_limits_apply_after_trimming(self):
        valid, skipped = validate_entries([{"sloka": " " + "x" * 1000 + " "}])
        assert skipped == 0
        assert len(valid[0].sloka) == 1000


class TestConfirm:

    @pytest.mark.parametrize(
        "answer, expected",
        [("y", True), ("Y", True), (" y ", True), ("n", False), ("", False), ("yes", False)],
    )
    def test_only_y_confirms(self, answer, expected):
        assert confirm(input_fn=lambda prompt: answer) is expected

    def test_end_of_input_declines(self):
        def closed_stdin(prompt):
            raise EOFError

        assert confirm(input_fn=closed_stdin) is False

    def test_prompt_text(self):
        prompts = []
        confirm(input_fn=lambda prompt: prompts.append(prompt) or "n")
        assert prompts == [CONFIRM_PROMPT]


# ══════════════════════════════════════════════════════════════════════════
# Seeding against SQLite
# ══════════════════════════════════════════════════════════════════════════


class TestSeed:

    @pytest.mark.asyncio
    async def test_empty_database_seeds_without_prompt(self, sqlite_database):
        result = await seed(sqlite_database, _entries("a", "b", "c"), skipped=2, input_fn=_never_asked)

        assert result.inserted == 3
        assert result.skipped == 2
        assert result.cleared == 0
        assert await _stored_slokas(sqlite_database) == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_declined_reseed_keeps_existing_rows(self, sqlite_database):
        await seed(sqlite_database, _entries("a", "b"))

        result = await seed(sqlite_database, _entries("x"), input_fn=lambda prompt: "n")

        assert result is None
        assert await _stored_slokas(sqlite_database) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_confirmed_reseed_replaces_rows(self, sqlite_database):
        await seed(sqlite_database, _entries("a", "b"))

        result = await seed(sqlite_database, _entries("x", "y", "z"), input_fn=lambda prompt: "y")

        assert result.cleared == 2
        assert result.inserted == 3
        assert await _stored_slokas(sqlite_database) == ["x", "y", "z"]

    @pytest.mark.asyncio
    async def test_assume_yes_skips_prompt(self, sqlite_database):
        await seed(sqlite_database, _entries("a"))

        result = await seed(sqlite_database, _entries("b"), assume_yes=True, input_fn=_never_asked)

        assert result.inserted == 1
        assert await _stored_slokas(sqlite_database) == ["b"]

    @pytest.mark.asyncio
    async def test_records_get_ids_and_timestamps(self, sqlite_database):
        await seed(sqlite_database, _entries("a", "b"))

        async with sqlite_database.session() as session:
            verses = await VerseStore(session).find_page(skip=0, take=50)

        assert verses[0].id != verses[1].id
        assert verses[0].created_at is not None
        assert verses[0].updated_at is not None


class TestRunSeed:

    @pytest.mark.asyncio
    async def test_loads_valid_entries_from_file(self, sqlite_database, tmp_path):
        path = tmp_path / "quotes.json"
        path.write_text(
            json.dumps([{"sloka": "one", "source": "A"}, {"source": "no sloka"}, {"sloka": "two"}]),
            encoding="utf-8",
        )

        status = await run_seed(path, assume_yes=True, database=sqlite_database)

        assert status == 0
        await sqlite_database.connect()
        assert await _stored_slokas(sqlite_database) == ["one", "two"]

    @pytest.mark.asyncio
    async def test_missing_file_exits_nonzero(self, sqlite_database, tmp_path):
        status = await run_seed(tmp_path / "absent.json", assume_yes=True, database=sqlite_database)

        assert status == 1
        assert not sqlite_database.is_connected

    @pytest.mark.asyncio
    async def test_unreachable_database_exits_nonzero(self, test_settings, tmp_path):
        from sloka_api.database import Database

        path = tmp_path / "quotes.json"
        path.write_text(json.dumps([{"sloka": "one"}]), encoding="utf-8")
        database = Database(test_settings, url="sqlite+aiosqlite:////nonexistent-dir/sub/slokas.db")

        assert await run_seed(path, assume_yes=True, database=database) == 1


class TestCli:

    def test_parser_defaults(self):
        args = build_parser().parse_args([])
        assert args.file == Path("quotes.json")
        assert args.yes is False

    def test_parser_options(self):
        args = build_parser().parse_args(["--file", "data.json", "-y"])
        assert args.file == Path("data.json")
        assert args.yes is True

    def test_main_returns_failure_for_missing_file(self, tmp_path):
        with patch("sloka_api.main.setup_logging"):
            assert main(["--file", str(tmp_path / "absent.json"), "--yes"]) == 1


# ══════════════════════════════════════════════════════════════════════════
# End to end: seed, then serve
# ══════════════════════════════════════════════════════════════════════════


class TestSeededApi:

    @pytest.mark.asyncio
    async def test_first_page_of_one_is_first_seeded_record(
        self, sqlite_database, test_settings, make_client
    ):
        await seed(sqlite_database, _entries("A", "B"))
        app = create_app(test_settings, database=sqlite_database)

        async with make_client(app) as client:
            body = (await client.get("/api/quotes?page=1&limit=1")).json()

        assert body["data"][0]["sloka"] == "A"
        assert body["pagination"]["totalItems"] == 2
        assert body["pagination"]["totalPages"] == 2
        assert body["pagination"]["hasNextPage"] is True

    @pytest.mark.asyncio
    async def test_lookup_by_id_and_health(self, sqlite_database, test_settings, make_client):
        await seed(
            sqlite_database,
            [VerseIn(sloka="कर्मण्येवाधिकारस्ते", source="Bhagavad Gita 2.47")],
        )
        app = create_app(test_settings, database=sqlite_database)

        async with make_client(app) as client:
            listed = (await client.get("/api/quotes")).json()["data"][0]
            fetched = (await client.get(f"/api/quote/{listed['id']}")).json()["data"]
            health = (await client.get("/health")).json()

        assert fetched == listed
        assert health["mongodb"] == "connected"

    @pytest.mark.asyncio
    async def test_huge_page_number_on_real_store(self, sqlite_database, test_settings, make_client):
        await seed(sqlite_database, _entries("A", "B"))
        app = create_app(test_settings, database=sqlite_database)

        async with make_client(app) as client:
            response = await client.get("/api/quotes?page=99999999999999999999")

        assert response.status_code == 200
        assert response.json()["data"] == []
        assert response.json()["pagination"]["totalItems"] == 2

    @pytest.mark.asyncio
    async def test_search_on_real_store(self, sqlite_database, test_settings, make_client):
        await seed(
            sqlite_database,
            [VerseIn(sloka="A", source="Gita.* x"), VerseIn(sloka="B", source="Bhagavad Gita 2")],
        )
        app = create_app(test_settings, database=sqlite_database)

        async with make_client(app) as client:
            lower = (await client.get("/api/quotes/search?source=gita")).json()
            literal = (await client.get("/api/quotes/search", params={"source": "gita.*"})).json()

        assert [q["sloka"] for q in lower["data"]] == ["A", "B"]
        assert [q["sloka"] for q in literal["data"]] == ["A"]
