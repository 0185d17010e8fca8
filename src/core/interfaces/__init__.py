"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos.
- Permite que servicios (escaneo masivo) dependan de abstracciones y se
  prueben con dobles sin red.
"""
