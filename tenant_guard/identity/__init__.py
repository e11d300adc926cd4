"""
Identidad y autorización: principal, errores de acceso, evaluadores y pipeline.

No re-exporta `dependencies` (depende del container, que depende de este
paquete).
"""
