import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .conf import configured_collaborators
from .engine import evaluate, validate, validate_formulas
from .serializers import (
    FormulaEvaluateSerializer, FormulaValidateSerializer, FormulaSetValidateSerializer,
)

logger = logging.getLogger(__name__)


class FormulaEvaluateAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = FormulaEvaluateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        context, options = serializer.to_engine_arguments()
        options.update(configured_collaborators())
        result = evaluate(serializer.validated_data["expression"], context, options)

        if not result["success"]:
            logger.info(f"Formula rejected ({result['error_code']}): {result['error']}")
            return Response(
                {"status": 400, "message": result["error"], "error_code": result["error_code"], "data": result},
                status=status.HTTP_400_BAD_REQUEST
            )
        return Response({"status": 200, "data": result}, status=status.HTTP_200_OK)


class FormulaValidateAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = FormulaValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = validate(serializer.validated_data["expression"])
        if not result["valid"]:
            return Response(
                {"status": 400, "message": result["error"], "error_code": result["error_code"]},
                status=status.HTTP_400_BAD_REQUEST
            )

        data = {
            "valid": True,
            "ast": result["ast"].to_dict(),
            "dependencies": result["dependencies"],
        }
        return Response({"status": 200, "data": data}, status=status.HTTP_200_OK)


class FormulaSetValidateAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = FormulaSetValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        summary = validate_formulas(serializer.validated_data["formulas"])
        return Response({"status": 200, "data": summary}, status=status.HTTP_200_OK)
