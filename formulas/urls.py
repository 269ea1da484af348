from django.urls import path
from .views import FormulaEvaluateAPIView, FormulaValidateAPIView, FormulaSetValidateAPIView


urlpatterns = [
    path("formulas/evaluate/", FormulaEvaluateAPIView.as_view(), name="formula-evaluate"),
    path("formulas/validate/", FormulaValidateAPIView.as_view(), name="formula-validate"),
    path("formulas/validate-set/", FormulaSetValidateAPIView.as_view(), name="formula-validate-set"),
]
