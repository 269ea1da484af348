from rest_framework import serializers


class FormulaContextSerializer(serializers.Serializer):
    """Evaluation context: date, employee and the values a formula may read."""
    date = serializers.DateField(required=False)
    employee_id = serializers.IntegerField(required=False, allow_null=True)
    variables = serializers.DictField(required=False, default=dict)
    concepts = serializers.DictField(required=False, default=dict)
    groups = serializers.DictField(
        child=serializers.ListField(child=serializers.DictField()),
        required=False,
        default=dict,
    )

    def validate_groups(self, value):
        """Every group member needs a concept_code."""
        for code, members in value.items():
            for member in members:
                if not member.get("concept_code"):
                    raise serializers.ValidationError(f"Group '{code}' has a member without concept_code")
        return value


class FormulaEvaluateSerializer(serializers.Serializer):
    """Serializer for evaluating a single formula."""
    expression = serializers.CharField(trim_whitespace=False)
    context = FormulaContextSerializer(required=False)
    params = serializers.DictField(required=False, default=dict)
    employee_params = serializers.DictField(child=serializers.DictField(), required=False, default=dict)
    scale = serializers.IntegerField(required=False, min_value=0, max_value=50)

    def to_engine_arguments(self):
        """Split validated data into evaluate() context and options."""
        data = self.validated_data
        context = dict(data.get("context") or {})
        options = {
            "params": data.get("params") or {},
            "employee_params": data.get("employee_params") or {},
        }
        if data.get("scale") is not None:
            options["scale"] = data["scale"]
        return context, options


class FormulaValidateSerializer(serializers.Serializer):
    """Serializer for validating a single formula."""
    expression = serializers.CharField(trim_whitespace=False)


class FormulaDefinitionSerializer(serializers.Serializer):
    formula_code = serializers.CharField(max_length=64)
    expression = serializers.CharField(trim_whitespace=False)


class FormulaSetValidateSerializer(serializers.Serializer):
    """Serializer for validating a set of formulas at once."""
    formulas = FormulaDefinitionSerializer(many=True)

    def validate_formulas(self, value):
        codes = [f["formula_code"] for f in value]
        if len(codes) != len(set(codes)):
            raise serializers.ValidationError("formula_code values must be unique")
        return value
