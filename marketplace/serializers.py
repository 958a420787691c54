from rest_framework import serializers

from .models import MarketplaceConnection


class MarketplaceConnectionSerializer(serializers.ModelSerializer):
    """Connection as shown to staff; credentials in `config` are write-only."""

    config_keys = serializers.SerializerMethodField()

    class Meta:
        model = MarketplaceConnection
        fields = [
            "id",
            "channel",
            "account_name",
            "is_active",
            "config",
            "config_keys",
            "last_synced_at",
            "last_error",
            "created_at",
        ]
        read_only_fields = ["id", "config_keys", "last_synced_at", "last_error", "created_at"]
        extra_kwargs = {"config": {"write_only": True, "required": False}}

    def get_config_keys(self, obj) -> list[str]:
        return sorted((obj.config or {}).keys())

    def validate_config(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Config must be an object.")
        return value


class SyncResultSerializer(serializers.Serializer):
    channel = serializers.CharField()
    pushed = serializers.IntegerField()
    error = serializers.CharField(allow_blank=True)
