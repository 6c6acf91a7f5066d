from rest_framework import serializers
from .models import Country


class CountrySerializer(serializers.ModelSerializer):
    # decimals go out as JSON numbers, the way clients of the feed expect them
    exchange_rate = serializers.FloatField(allow_null=True, read_only=True)
    estimated_gdp = serializers.FloatField(allow_null=True, read_only=True)

    class Meta:
        model = Country
        fields = [
            'id', 'name', 'capital', 'region', 'population',
            'currency_code', 'exchange_rate', 'estimated_gdp',
            'flag_url', 'last_refreshed_at'
        ]
        read_only_fields = fields


class StatusSerializer(serializers.Serializer):
    total_countries = serializers.IntegerField()
    last_refreshed_at = serializers.CharField(allow_null=True)
