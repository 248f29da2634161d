"""Business logic services.

Services contain all business logic and are called by routes.
They take the key-value store and the RAWG client as explicit arguments,
so tests can pass in-memory and mocked implementations.
"""
