"""
Tests for the catalog aggregation handlers.
"""

import random

import pytest

from service_catalog.app.domain.aggregation import (
    PRELOAD_SECTIONS,
    discover_titles,
    forward_params,
    parse_media_type,
    preload_sections,
    random_title,
    require_param,
    search_titles,
    season_episodes,
    title_details,
)
from shared.errors import ExternalServiceError, ValidationError
from shared.test_helpers import TestDataFactory, create_fake_tmdb_client


class TestParameters:
    """Request parameter validation."""

    def test_media_type_defaults_to_movie(self):
        assert parse_media_type(None) == "movie"
        assert parse_media_type("TV") == "tv"

    def test_unknown_media_type_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_media_type("person")

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_parameter_is_rejected(self, value):
        with pytest.raises(ValidationError) as exc_info:
            require_param("q", value)

        assert exc_info.value.details == {"parameter": "q"}


class TestSearchAndDiscover:
    """Search and discovery listings."""

    @pytest.mark.asyncio
    async def test_search_keeps_only_titles(self):
        movie = TestDataFactory.create_movie()
        show = TestDataFactory.create_show()
        client = create_fake_tmdb_client({
            "search/multi": {"results": [movie, TestDataFactory.create_person(), show]},
        })

        results = await search_titles(client, "batman")

        assert results == [movie, show]
        client.get.assert_awaited_once_with("search/multi", {"query": "batman", "include_adult": False})

    @pytest.mark.asyncio
    async def test_discover_filters_and_limits(self):
        page = TestDataFactory.create_movie_page(count=4)
        page["results"].insert(1, TestDataFactory.create_movie(tmdb_id=1, poster=None))
        client = create_fake_tmdb_client({"discover/movie": page})

        results = await discover_titles(client, "movie", {"with_genres": "28"}, limit=2)

        assert [item["id"] for item in results] == [100, 101]
        client.get.assert_awaited_once_with("discover/movie", {"with_genres": "28"})

    @pytest.mark.asyncio
    async def test_discover_without_limit_returns_all_titled_items(self):
        client = create_fake_tmdb_client({"discover/tv": {"results": [
            TestDataFactory.create_show(tmdb_id=1),
            {"id": 2, "poster_path": "/x.jpg"},
        ]}})

        results = await discover_titles(client, "tv", {})

        assert [item["id"] for item in results] == [1]


class TestTitleDetails:
    """Details aggregation."""

    @pytest.mark.asyncio
    async def test_movie_uses_recommendations_when_enough(self):
        recommendations = TestDataFactory.create_movie_page(count=12)
        client = create_fake_tmdb_client({
            "movie/268": TestDataFactory.create_movie(),
            "movie/268/recommendations": recommendations,
        })

        details = await title_details(client, "movie", "268")

        assert details["title"] == "Batman"
        assert len(details["similar"]) == 10
        assert details["similar"][0]["id"] == 100
        called_paths = [call.args[0] for call in client.get.await_args_list]
        assert "movie/268/similar" not in called_paths

    @pytest.mark.asyncio
    async def test_movie_falls_back_to_similar(self):
        similar = TestDataFactory.create_movie_page(count=3, start_id=500)
        similar["results"].append(TestDataFactory.create_movie(tmdb_id=9, poster=None))
        client = create_fake_tmdb_client({
            "movie/268": TestDataFactory.create_movie(),
            "movie/268/recommendations": TestDataFactory.create_movie_page(count=2),
            "movie/268/similar": similar,
        })

        details = await title_details(client, "movie", "268")

        assert [item["id"] for item in details["similar"]] == [500, 501, 502]

    @pytest.mark.asyncio
    async def test_tv_drops_specials_season(self):
        show = TestDataFactory.create_show()
        show["seasons"] = [{"season_number": 0}, {"season_number": 1}, {"season_number": 2}]
        client = create_fake_tmdb_client({"tv/2098": show})

        details = await title_details(client, "tv", "2098")

        assert [season["season_number"] for season in details["seasons"]] == [1, 2]
        assert "similar" not in details
        client.get.assert_awaited_once_with("tv/2098", {"append_to_response": "external_ids,videos"})

    @pytest.mark.asyncio
    async def test_episodes_default_to_empty_list(self):
        client = create_fake_tmdb_client({
            "tv/2098/season/1": {"episodes": [{"episode_number": 1}]},
            "tv/2098/season/9": {"name": "Season 9"},
        })

        assert await season_episodes(client, "2098", "1") == [{"episode_number": 1}]
        assert await season_episodes(client, "2098", "9") == []


def preload_responses(count: int = 12):
    """Section listings plus a details body for every listed title."""
    responses = {
        path: TestDataFactory.create_movie_page(count=count)
        for _, path, _ in PRELOAD_SECTIONS.values()
    }
    for index in range(count):
        tmdb_id = 100 + index
        responses[f"movie/{tmdb_id}"] = TestDataFactory.create_details(tmdb_id, runtime=90 + index)
        responses[f"tv/{tmdb_id}"] = TestDataFactory.create_details(tmdb_id, runtime=None, episode_run_time=[45, 50])
    return responses


def detail_paths(client):
    return [
        call.args[0] for call in client.get.await_args_list
        if call.args[0].rsplit("/", 1)[-1].isdigit()
    ]


class TestPreload:
    """Homepage sections."""

    @pytest.mark.asyncio
    async def test_all_sections_are_truncated(self):
        client = create_fake_tmdb_client(preload_responses())

        sections = await preload_sections(client)

        assert set(sections) == set(PRELOAD_SECTIONS)
        assert all(len(items) == 10 for items in sections.values())

    @pytest.mark.asyncio
    async def test_each_distinct_title_is_fetched_once_for_runtime(self):
        client = create_fake_tmdb_client(preload_responses())

        await preload_sections(client)

        paths = detail_paths(client)
        # Ten movie ids shared by the movie sections, ten tv ids
        assert len(paths) == 20
        assert len(set(paths)) == 20
        assert client.get.await_count == len(PRELOAD_SECTIONS) + 20

    @pytest.mark.asyncio
    async def test_runtime_falls_back_to_episode_run_time(self):
        client = create_fake_tmdb_client(preload_responses())

        sections = await preload_sections(client)

        assert sections["trending"][0]["runtime"] == 90
        assert sections["topRated"][3]["runtime"] == 93
        assert all(item["runtime"] == 45 for item in sections["tvTopRated"])
        # Provider fields are kept as-is
        assert sections["trending"][0]["poster_path"] == "/poster.jpg"

    @pytest.mark.asyncio
    async def test_missing_runtime_is_none(self):
        responses = preload_responses(count=1)
        responses["movie/100"] = TestDataFactory.create_details(100, runtime=None)
        client = create_fake_tmdb_client(responses)

        sections = await preload_sections(client)

        assert sections["nowPlaying"][0]["runtime"] is None

    @pytest.mark.asyncio
    async def test_editors_section_queries_top_voted_discovery(self):
        client = create_fake_tmdb_client(preload_responses())

        await preload_sections(client)

        client.get.assert_any_await(
            "discover/movie",
            {"sort_by": "vote_average.desc", "vote_count.gte": 100, "include_adult": False},
        )

    @pytest.mark.asyncio
    async def test_one_failing_section_fails_the_whole_preload(self):
        responses = preload_responses()
        responses["movie/upcoming"] = ExternalServiceError("tmdb", "Unexpected status 500")
        client = create_fake_tmdb_client(responses)

        with pytest.raises(ExternalServiceError):
            await preload_sections(client)

    @pytest.mark.asyncio
    async def test_one_failing_detail_fails_the_whole_preload(self):
        responses = preload_responses()
        responses["tv/104"] = ExternalServiceError("tmdb", "Unexpected status 502")
        client = create_fake_tmdb_client(responses)

        with pytest.raises(ExternalServiceError):
            await preload_sections(client)


class TestForwardParams:
    """Query parameters passed through to discovery."""

    def test_single_values_stay_scalar(self):
        assert forward_params([("with_genres", "28"), ("page", "2")]) == {"with_genres": "28", "page": "2"}

    def test_repeated_values_are_all_kept_in_order(self):
        items = [("with_genres", "28"), ("sort_by", "popularity.desc"), ("with_genres", "35")]

        assert forward_params(items) == {"with_genres": ["28", "35"], "sort_by": "popularity.desc"}

    def test_excluded_names_are_dropped(self):
        assert forward_params([("limit", "5"), ("year", "1989")], exclude=("limit",)) == {"year": "1989"}


class TestRandomTitle:
    """Random pick from discovery."""

    @pytest.mark.asyncio
    async def test_returns_item_with_poster(self):
        page = TestDataFactory.create_movie_page(count=3, total_pages=1)
        client = create_fake_tmdb_client({"discover/movie": page})

        pick = await random_title(client, "movie", "28", rng=random.Random(7))

        assert pick in page["results"]
        client.get.assert_awaited_once_with(
            "discover/movie", {"with_genres": "28", "include_adult": False, "page": 1}
        )

    @pytest.mark.asyncio
    async def test_fetches_randomly_chosen_page(self):
        page = TestDataFactory.create_movie_page(count=2, total_pages=1000)
        client = create_fake_tmdb_client({"discover/tv": page})
        rng = random.Random(3)
        expected_page = random.Random(3).randint(1, 500)

        await random_title(client, "tv", rng=rng)

        last_params = client.get.await_args_list[-1].args[1]
        assert last_params["page"] == expected_page
        assert last_params["page"] <= 500

    @pytest.mark.asyncio
    async def test_no_pages_or_no_posters_gives_none(self):
        empty = create_fake_tmdb_client({"discover/movie": {"results": [], "total_pages": 0}})
        posterless = create_fake_tmdb_client({"discover/movie": {
            "results": [TestDataFactory.create_movie(poster=None)],
            "total_pages": 1,
        }})

        assert await random_title(empty, "movie") is None
        assert await random_title(posterless, "movie") is None
