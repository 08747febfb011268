"""
Catalog domain: entities, read models, ETag derivation and conditional GET.
"""
