from os import environ

from google.cloud.pubsub_v1 import PublisherClient, SubscriberClient
from testcontainers.core.container import DockerContainer
from testcontainers.core.waiting_utils import wait_for_logs

EMULATOR_IMAGE = "gcr.io/google.com/cloudsdktool/google-cloud-cli:latest"
EMULATOR_READY_LOG = "Server started, listening"


class PubSubEmulatorContainer(DockerContainer):
    """
    Runs the gcloud PubSub emulator. Starting it also exports PUBSUB_EMULATOR_HOST, so every GCP client built
    afterwards (including the one our apps build for themselves) talks to the container instead of GCP.
    """

    def __init__(self, project: str = "test-project", port: int = 8800, startup_timeout: int = 60, **kwargs):
        super().__init__(image=EMULATOR_IMAGE, **kwargs)
        self.project = project
        self.port = port
        self.startup_timeout = startup_timeout
        self.with_exposed_ports(port)
        self.with_command(f"gcloud beta emulators pubsub start --project={project} --host-port=0.0.0.0:{port}")

    @property
    def emulator_host(self) -> str:
        return f"{self.get_container_host_ip()}:{self.get_exposed_port(self.port)}"

    def start(self) -> "PubSubEmulatorContainer":
        super().start()
        wait_for_logs(self, EMULATOR_READY_LOG, self.startup_timeout)
        environ["PUBSUB_EMULATOR_HOST"] = self.emulator_host
        return self

    def publisher(self) -> PublisherClient:
        return PublisherClient()

    def subscriber(self) -> SubscriberClient:
        return SubscriberClient()
