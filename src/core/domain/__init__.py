"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras de datos puras y estrictas (Pydantic v2).
- El dominio no conoce HTTP, CLI ni captchas en bruto: solo RUTs,
  contribuyentes, actividades y métricas.
"""
