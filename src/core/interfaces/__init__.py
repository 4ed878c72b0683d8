"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan los adaptadores de render.
- Permite invertir dependencias: el pipeline depende de abstracciones, no de
  vl-convert ni de un servidor concreto.
"""
