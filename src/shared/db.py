"""Schema management for domains backed by a relational provider."""

from protean.domain import Domain
from sqlalchemy import create_engine

_RELATIONAL_PROVIDERS = ("sqlite", "postgresql")


def _relational_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in _RELATIONAL_PROVIDERS:
            yield provider


def _load_models(domain: Domain, provider) -> None:
    # Touching a repository's DAO builds its SQLAlchemy model on the
    # provider's metadata; tables only exist for models built this way.
    registries = (domain.registry.aggregates, domain.registry.entities)
    for registry in registries:
        for _, record in registry.items():
            if record.cls.meta_.provider == provider.name:
                domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> None:
    """Create the tables of every aggregate and entity in ``domain``."""
    with domain.domain_context():
        for provider in _relational_providers(domain):
            _load_models(domain, provider)
            provider._metadata.create_all(create_engine(provider.conn_info["database_uri"]))


def drop_db(domain: Domain) -> None:
    with domain.domain_context():
        for provider in _relational_providers(domain):
            provider._metadata.drop_all(create_engine(provider.conn_info["database_uri"]))
