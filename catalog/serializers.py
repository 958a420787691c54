"""Serializers for the public catalog."""

from rest_framework import serializers

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    available = serializers.IntegerField(read_only=True)

    class Meta:
        model = Product
        fields = ["id", "sku", "name", "slug", "description", "price", "available"]
