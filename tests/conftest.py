pytest_plugins = [
    "tests.fixtures.test_client",
    "tests.fixtures.gcp_pubsub",
]
