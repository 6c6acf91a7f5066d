import logging
import os

from django.apps import apps
from django.http import FileResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from . import catalog, utils
from .exceptions import CountryNotFound, RefreshError, UpstreamUnavailable
from .serializers import CountrySerializer, StatusSerializer

logger = logging.getLogger(__name__)


def get_refresher():
    return apps.get_app_config("countries").refresher


def not_found():
    return Response({"error": "Country not found"}, status=status.HTTP_404_NOT_FOUND)


def internal_error(exc):
    return Response(
        {"error": "Internal server error", "details": str(exc)},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@api_view(['POST'])
def refresh_countries(request):
    """
    POST /countries/refresh
    Fetch countries and exchange rates, upsert them in one transaction and
    regenerate the summary image.
    """
    try:
        result = get_refresher().refresh()
    except UpstreamUnavailable as e:
        return Response(
            {"error": "External data source unavailable", "details": f"Could not fetch data from {e.endpoint}"},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    except RefreshError as e:
        return internal_error(e)

    return Response(
        {
            "message": "Countries refreshed successfully",
            "records_fetched": result.records_fetched,
            "records_written": result.records_written,
            "records_skipped": result.records_skipped,
            "last_refreshed_at": result.refreshed_at,
        },
        status=status.HTTP_201_CREATED,
    )


@api_view(['GET'])
def list_countries(request):
    """
    GET /countries
    Filters: ?region=<region>&currency=<code> (case-insensitive)
    Sorting: ?sort=gdp_desc|gdp_asc|name_asc|name_desc|population_asc|population_desc
    Unknown sort values and parameters are ignored.
    """
    qs = catalog.list_countries(
        region=request.query_params.get("region"),
        currency=request.query_params.get("currency"),
        sort=request.query_params.get("sort"),
    )
    return Response(CountrySerializer(qs, many=True).data)


@api_view(['GET', 'DELETE'])
def country_detail(request, name):
    """
    GET /countries/:name  -> return 404 JSON if not found
    DELETE /countries/:name -> delete, return 204 or 404
    """
    try:
        if request.method == 'GET':
            return Response(CountrySerializer(catalog.get_country(name)).data)
        catalog.delete_country(name)
    except CountryNotFound:
        return not_found()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
def get_status(request):
    """
    GET /status -> { total_countries, last_refreshed_at }
    last_refreshed_at is the commit time of the last successful refresh in
    this process, or null.
    """
    serializer = StatusSerializer({
        "total_countries": catalog.count_countries(),
        "last_refreshed_at": get_refresher().state.last_refreshed_at,
    })
    return Response(serializer.data)


@api_view(['GET'])
def get_summary_image(request):
    """
    GET /countries/image
    Serve the summary image written by the last successful refresh.
    """
    path = utils.get_summary_image_path()
    if not os.path.exists(path):
        return Response({"error": "Summary image not found"}, status=status.HTTP_404_NOT_FOUND)
    return FileResponse(open(path, 'rb'), content_type='image/png')
