from rest_framework import serializers


class BaseModelSerializer(serializers.ModelSerializer):
    """
    Base serializer that provides common functionality.

    Features:
    - camelCase request keys accepted alongside snake_case ones
    - Common validation hook for child classes
    """

    def to_internal_value(self, data):
        if hasattr(data, "items"):
            data = {_snake_case(key): value for key, value in data.items()}
        return super().to_internal_value(data)

    def validate(self, data):
        """
        Base validation that can be extended by child classes.
        """
        return super().validate(data)


def _snake_case(key):
    if not isinstance(key, str) or "_" in key or key.islower():
        return key
    out = []
    for ch in key:
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out).lstrip("_")
