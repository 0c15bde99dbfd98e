"""
Object client backends

One AbstractObjectClient implementation per storage provider.
"""
