"""
Shared service dependencies (weather cache, upstream clients, storage).

Tests swap these out through ``app.dependency_overrides``.
"""
from fastapi import Request

from .cache import WeatherCache
from .geocode import search_places
from .storage import ImageStorage, default_storage
from .weather import fetch_marine


def get_weather_cache(request: Request) -> WeatherCache:
    return request.app.state.weather_cache


def get_marine_fetcher():
    return fetch_marine


def get_geocoder():
    return search_places


def get_image_storage() -> ImageStorage:
    return default_storage()
