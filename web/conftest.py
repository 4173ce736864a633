import pytest


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    from apps.checkout import providers

    settings.USE_HTTP_ADAPTERS = False
    settings.HTTP_RETRY_BACKOFF_BASE = 0.0
    providers.reset_notifier_breaker()
    yield
    providers.shutdown_notify_executor()
    providers.reset_notifier_breaker()
