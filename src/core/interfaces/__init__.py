"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan colaboradores concretos.
- El scanner y el pipeline de subida dependen de estos contratos, no del
  almacén del manifiesto ni de un almacén de credenciales concreto.
"""
