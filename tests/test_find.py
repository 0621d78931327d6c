"""Tests for find() over unique keys, exact-match and range indexes.

Fixture data (ids "1" to "8"): number = [3, 4, 4, 1, 1, 1, 1, 100000],
number2 = 33 for id 2, 1 for id 3 and 200 otherwise.
"""

import pytest

from nohm import NotFoundError, SearchOptions
from nohm.exceptions import InvalidSearchError


@pytest.mark.integration
class TestFindExact:
    """Test unique and exact-match searches."""

    @pytest.mark.asyncio
    async def test_find_all(self, find_model, find_records):
        """Test an empty search returns every id."""
        assert await find_model.find() == ["1", "2", "3", "4", "5", "6", "7", "8"]
        assert await find_model.find({}) == ["1", "2", "3", "4", "5", "6", "7", "8"]

    @pytest.mark.asyncio
    async def test_find_unique(self, find_model, find_records):
        """Test unique searches are case-insensitive."""
        assert await find_model.find({"email": "UNIQUEFIND@hurgel.de"}) == ["4"]
        assert await find_model.find({"email": "nobody@hurgel.de"}) == []

    @pytest.mark.asyncio
    async def test_unique_short_circuits(self, find_model, find_records):
        """Test a unique term answers on its own."""
        assert await find_model.find({"email": "uniquefind@hurgel.de", "name": "indextest"}) == ["4"]

    @pytest.mark.asyncio
    async def test_find_index(self, find_model, find_records):
        """Test exact-match index searches."""
        assert await find_model.find({"name": "indextest"}) == ["5", "6"]
        assert await find_model.find({"name": "nothing"}) == []

    @pytest.mark.asyncio
    async def test_numeric_exact_value(self, find_model, find_records):
        """Test a plain value on a numeric index is the range [value, value]."""
        assert await find_model.find({"number": 4}) == ["2", "3"]

    @pytest.mark.asyncio
    async def test_non_indexed_property(self, find_model, find_records):
        """Test searching a plain property is rejected."""
        with pytest.raises(InvalidSearchError, match="non-indexed and non-unique property 'gender'"):
            await find_model.find({"gender": "male"})
        with pytest.raises(InvalidSearchError):
            await find_model.find({"undefined_property": 1})

    @pytest.mark.asyncio
    async def test_invalid_unique_value(self, find_model, find_records):
        """Test non-scalar unique searches are rejected."""
        with pytest.raises(InvalidSearchError, match="Invalid search parameters"):
            await find_model.find({"email": {"min": 1}})

    @pytest.mark.asyncio
    async def test_removed_not_found(self, find_model, find_records):
        """Test removed instances leave the indexes."""
        await find_model.remove_by_id("5")
        assert await find_model.find({"name": "indextest"}) == ["6"]
        assert "5" not in await find_model.find({"number": 1})


@pytest.mark.integration
class TestFindRange:
    """Test range searches on numeric indexes."""

    @pytest.mark.asyncio
    async def test_min_only(self, find_model, find_records):
        """Test an open upper bound."""
        assert await find_model.find({"number": {"min": 2}}) == ["1", "2", "3", "8"]

    @pytest.mark.asyncio
    async def test_descending(self, find_model, find_records):
        """Test max=-inf scans from min downwards."""
        assert await find_model.find({"number": {"min": 3, "max": "-inf"}}) == ["1", "7", "6", "5", "4"]

    @pytest.mark.asyncio
    async def test_descending_with_limit(self, find_model, find_records):
        """Test limit applies to descending scans."""
        result = await find_model.find({"number": {"min": 3, "max": "-inf", "limit": 2}})
        assert result == ["1", "7"]

    @pytest.mark.parametrize("endpoints,expected", [
        ("(]", ["7", "6", "5", "4"]),
        ("[)", ["1"]),
        ("()", []),
        ("(", ["7", "6", "5", "4"]),
        (")", ["1"]),
    ])
    @pytest.mark.asyncio
    async def test_endpoints(self, find_model, find_records, endpoints, expected):
        """Test exclusive endpoints on a descending range."""
        result = await find_model.find({"number": {"min": 3, "max": 1, "endpoints": endpoints}})
        assert result == expected

    @pytest.mark.asyncio
    async def test_offset_and_limit(self, find_model, find_records):
        """Test offset/limit windows."""
        assert await find_model.find({"number": {"min": 1, "limit": 3, "offset": 2}}) == ["6", "7", "1"]
        assert await find_model.find({"number": {"min": 1, "limit": 3, "offset": 6}}) == ["3", "8"]
        assert await find_model.find({"number": {"min": 1, "offset": 5}}) == ["2", "3", "8"]

    @pytest.mark.asyncio
    async def test_search_options_object(self, find_model, find_records):
        """Test SearchOptions instances are accepted."""
        assert await find_model.find({"number": SearchOptions(min=100, max="+inf")}) == ["8"]

    @pytest.mark.asyncio
    async def test_multiple_ranges_intersect(self, find_model, find_records):
        """Test range terms intersect keeping the first term's order."""
        result = await find_model.find({"number": {"min": 2}, "number2": {"max": 100}})
        assert result == ["2", "3"]

    @pytest.mark.asyncio
    async def test_set_and_range_intersect(self, find_model, find_records):
        """Test exact-match and range terms combined."""
        result = await find_model.find({"name": "numericindextest", "number": {"min": 4}})
        assert result == ["2", "3"]


@pytest.mark.integration
class TestFindAndLoad:
    """Test find_and_load()."""

    @pytest.mark.asyncio
    async def test_loads_matches(self, find_model, find_records):
        """Test every match is loaded."""
        instances = await find_model.find_and_load({"name": "indextest"})
        assert [instance.property("email") for instance in instances] == [
            "indextest@hurgel.de", "indextest2@hurgel.de",
        ]

    @pytest.mark.asyncio
    async def test_no_matches(self, find_model, find_records):
        """Test nothing found raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await find_model.find_and_load({"name": "nobody"})
