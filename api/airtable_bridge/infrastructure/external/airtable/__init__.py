"""
Integración con la REST API de Airtable (lectura filtrada, create y patch).
"""
