# -*- coding: utf-8 -*-
""" Global fixtures """

import os

import pytest

from gql_pipeline import build_pipeline

from ._people import DATE_CODEC, PEOPLE, PEOPLE_SDL, PERSON_SDL, person_view


@pytest.fixture
def fixture_file():
    """ Helper to load fixture files by name. """

    def load(name):
        filepath = os.path.join(os.path.dirname(__file__), "fixtures", name)
        with open(filepath, "rb") as f:
            return f.read().decode("utf-8")

    return load


@pytest.fixture
def fixture_path():
    def path(name):
        return os.path.join(os.path.dirname(__file__), "fixtures", name)

    return path


@pytest.fixture
def person_pipeline():
    return build_pipeline(
        schema=PERSON_SDL,
        query={"person": lambda *_, **__: {"id": "1", "name": "Ada"}},
    )


@pytest.fixture
def people_resolvers():
    """ Root resolver maps over the in memory people store. """
    store = {k: dict(v) for k, v in PEOPLE.items()}

    def person(root, ctx, info, id):
        return person_view(store, id)

    def people(root, ctx, info):
        return [person_view(store, k) for k in store]

    def whoami(root, ctx, info):
        return ctx.get("user")

    def echo(root, ctx, info, value=None):
        return value

    def rename(root, ctx, info, id, name):
        store[id]["name"] = name
        return person_view(store, id)

    def person_added(root, ctx, info):
        return person_view(store, "3")

    return {
        "store": store,
        "query": {
            "person": person,
            "people": people,
            "whoami": whoami,
            "greeting": "Hello",
            "echo": echo,
        },
        "mutation": {"rename": rename},
        "subscription": {"personAdded": person_added},
    }


@pytest.fixture
def people_pipeline(people_resolvers):
    def factory(**options):
        kwargs = dict(
            schema=PEOPLE_SDL,
            query=people_resolvers["query"],
            mutation=people_resolvers["mutation"],
            subscription=people_resolvers["subscription"],
            scalars={"Date": DATE_CODEC},
        )
        kwargs.update(options)
        return build_pipeline(**kwargs)

    return factory


@pytest.fixture
def raiser():
    def factory(cls, *args, **kwargs):
        assert issubclass(cls, Exception)

        def _raiser(*_a, **_kw):
            raise cls(*args, **kwargs)

        return _raiser

    return factory
