"""
Pytest configuration and fixtures for docimport tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import os
from collections.abc import Generator

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from docimport.store.connection import DatabaseConnectionPool
from docimport.store.memory import InMemoryCollectionStore
from docimport.store.postgres import PostgresCollectionStore


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# STORE FIXTURES
# =======================

@pytest.fixture
def memory_store() -> InMemoryCollectionStore:
    """
    In-memory collection store with default limits

    Returns:
        InMemoryCollectionStore
    """
    return InMemoryCollectionStore()


@pytest.fixture
def small_store() -> InMemoryCollectionStore:
    """
    In-memory collection store with a 64 byte document limit and 200 byte batch limit

    Returns:
        InMemoryCollectionStore
    """
    return InMemoryCollectionStore(max_document_size=64, max_transaction_size=200)


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_docimport",
        password="test_password",
        dbname="test_docimport",
        driver=None,
    ) as postgres:
        # Wait for container to be ready
        postgres.get_connection_url()
        yield postgres


@pytest.fixture
def db_pool(postgres_container) -> Generator[DatabaseConnectionPool, None, None]:
    """
    Open connection pool to the test container

    Yields:
        DatabaseConnectionPool
    """
    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_docimport",
        user="test_docimport",
        password="test_password",
        timeout=10.0,
    )
    pool.open()
    yield pool
    pool.close()


@pytest.fixture
def postgres_store(db_pool) -> PostgresCollectionStore:
    """
    PostgreSQL store with empty tables

    Returns:
        PostgresCollectionStore
    """
    store = PostgresCollectionStore(db_pool, max_document_size=64, max_transaction_size=200)
    store.initialize()
    db_pool.execute_command("TRUNCATE TABLE docimport_document, docimport_collection")
    return store


@pytest.fixture
def db_connection(postgres_container) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a raw database connection for a single test

    Yields:
        psycopg Connection object
    """
    conn = psycopg.connect(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        dbname="test_docimport",
        user="test_docimport",
        password="test_password",
    )
    try:
        yield conn
    finally:
        conn.rollback()
        conn.close()


# =======================
# FILE FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_data_dir() -> str:
    """
    Get path to test data fixtures directory

    Returns:
        Path to tests/fixtures directory
    """
    return os.path.join(os.path.dirname(__file__), "fixtures")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """
    Run every test in an empty directory without DOCIMPORT_* variables

    Keeps a developer's .env and environment out of settings tests.
    """
    for name in list(os.environ):
        if name.startswith("DOCIMPORT_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
