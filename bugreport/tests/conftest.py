"""Shared fixtures for bugreport tests."""

import pytest


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset all module-level singletons and caches between tests."""
    yield

    # 1. Settings LRU cache
    from bugreport.config import get_settings

    get_settings.cache_clear()

    # 2. Report store container client singleton
    import bugreport.services.report_store as store_mod

    store_mod._container_client = None

    # 3. HTTP client singleton
    import bugreport.services.http_client as http_mod

    http_mod._client = None

    # 4. Error capture: restore hooks and drop the process buffer
    import bugreport.services.error_log as error_log_mod

    error_log_mod.uninstall()
    error_log_mod._buffer = None

    # 5. Health check cache
    import bugreport.main as main_mod

    main_mod._health_cache = None


@pytest.fixture
def mock_settings(monkeypatch):
    """Provide a Settings object with safe test defaults."""
    from bugreport.config import Settings, get_settings

    test_settings = Settings(
        azure_storage_account="teststorage",
        azure_reports_container="test-reports",
        managed_identity_client_id="test-client-id",
        endpoint="/api/reports",
        base_url="http://test",
    )

    get_settings.cache_clear()
    monkeypatch.setattr("bugreport.config.get_settings", lambda: test_settings)

    # Patch get_settings in all modules that import it directly
    # (from bugreport.config import get_settings creates a local binding that
    # the bugreport.config monkeypatch above does not affect)
    for mod_path in [
        "bugreport.services.http_client",
        "bugreport.services.report_store",
        "bugreport.services.widget",
        "bugreport.main",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings
