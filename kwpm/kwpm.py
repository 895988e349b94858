from kubernetes import client, config
from kubernetes.client.rest import ApiException
import os
import copy
import logging

from types import SimpleNamespace

from kwpm import checks, specs
from kwpm.errors import AlreadyExistsError, MissingReferenceError


def _contains(live, desired):
    """
    True when every field set in desired has the same value in live. The server
    fills in defaults we never declared, so plain equality would always differ.
    """
    if isinstance(desired, dict):
        if not isinstance(live, dict):
            return False
        return all(_contains(live.get(k), v) for k, v in desired.items())
    if isinstance(desired, list):
        if not isinstance(live, list) or len(live) != len(desired):
            return False
        return all(_contains(l, d) for l, d in zip(live, desired))
    return live == desired


class Kwpm:
    """
    Submits the wordpress site and its shared mariadb to a cluster. Everything
    after the API call (scheduling, rollout, binding) is the orchestrator's job.
    """
    def __init__(self,**kwargs):
        kubeconfig = kwargs.get("kubeconfig",os.environ.get("KUBECONFIG",None))
        self._namespace = kwargs.get("namespace",os.environ.get("KWPM_NAMESPACE","default"))
        self._pv_base_path = kwargs.get("pv_base_path",os.environ.get("KWPM_PV_BASE_PATH","/data/volumes/kwpm"))

        config.load_kube_config(kubeconfig)
        client_config = client.Configuration.get_default_copy()
        client_config.assert_hostname = False
        self.api_client = client.api_client.ApiClient(configuration=client_config)
        self.pod_client = client.CoreV1Api(self.api_client)
        self.app_client = client.AppsV1Api(self.api_client)
        self._specs = SimpleNamespace(
            deploy=kwargs.get("deploy") or specs.wordpress_deployment(),
        )

    @property
    def namespace(self):
        return self._namespace

    @property
    def pv_base_path(self):
        return self._pv_base_path

    @property
    def specs(self):
        return self._specs

    @property
    def deploy_name(self):
        return self.specs.deploy["metadata"]["name"]

    def get_namespaces(self):
        return self.pod_client.list_namespace().items

    def get_kwpm_namespaces(self):
        return [ ns for ns in self.get_namespaces() if (ns.metadata.name or "").startswith("kwpm-") ]

    def is_mariadb_created(self):
        return any((ns.metadata.name or "").endswith("-mariadb") for ns in self.get_kwpm_namespaces())

    def create_mariadb_if_not_exists(self, root_password, node_hostname):
        if self.is_mariadb_created():
            raise AlreadyExistsError("MariaDB deployment already exists")

        ns = specs.MARIADB_NAMESPACE
        logging.info(f"Creating mariadb in {ns} on node {node_hostname}")

        logging.info("Creating namespace")
        self.pod_client.create_namespace(body=specs.namespace(ns))

        logging.info("Creating pv")
        self.pod_client.create_persistent_volume(body=specs.mariadb_pv(self.pv_base_path, node_hostname))

        logging.info("Creating pvc")
        self.pod_client.create_namespaced_persistent_volume_claim(ns, body=specs.mariadb_pvc())

        logging.info("Creating service")
        self.pod_client.create_namespaced_service(ns, body=specs.mariadb_svc())

        logging.info("Creating secret")
        self.pod_client.create_namespaced_secret(ns, body=specs.mysql_secret(root_password))

        logging.info("Creating deployment")
        self.app_client.create_namespaced_deployment(ns, body=specs.mariadb_deployment())

    def remove_mariadb(self):
        logging.info("Removing mariadb")

        logging.info(f"Deleting namespace {specs.MARIADB_NAMESPACE}")
        self.pod_client.delete_namespace(specs.MARIADB_NAMESPACE)

        logging.info(f"Deleting pv {specs.MARIADB_PV}")
        self.pod_client.delete_persistent_volume(specs.MARIADB_PV)

    def check_references(self, deploy=None):
        deploy = deploy or self.specs.deploy
        refs = checks.referenced_objects(deploy)
        readers = {
            "secrets": self.pod_client.read_namespaced_secret,
            "configmaps": self.pod_client.read_namespaced_config_map,
            "claims": self.pod_client.read_namespaced_persistent_volume_claim,
        }

        missing = []
        for kind, reader in readers.items():
            for name in sorted(refs[kind]):
                try:
                    reader(name, self.namespace)
                except ApiException as e:
                    if e.status != 404:
                        raise
                    logging.debug(f"{kind}/{name} not found in {self.namespace}")
                    missing.append((kind, name))

        if missing:
            raise MissingReferenceError(self.namespace, missing)

    def read_deployment(self, name):
        try:
            live = self.app_client.read_namespaced_deployment(name, self.namespace)
        except ApiException as e:
            if e.status != 404:
                raise
            return None
        return self.api_client.sanitize_for_serialization(live)

    def apply_wordpress(self, deploy=None):
        deploy = deploy or self.specs.deploy

        checks.validate(deploy)
        self.check_references(deploy)

        name = deploy["metadata"]["name"]
        live = self.read_deployment(name)
        if live is None:
            logging.info(f"Creating deployment {name}")
            self.app_client.create_namespaced_deployment(self.namespace, body=deploy)
            return True

        owned = { "metadata": {}, "spec": {} }
        if "labels" in deploy["metadata"]:
            owned["metadata"]["labels"] = deploy["metadata"]["labels"]
        for k in ("selector", "strategy", "template"):
            if k in deploy["spec"]:
                owned["spec"][k] = deploy["spec"][k]
        if _contains(live, owned):
            logging.info(f"Deployment {name} is up to date")
            return False

        # a strategic merge keeps live list items we never declared, so replace
        body = copy.deepcopy(deploy)
        body["metadata"]["resourceVersion"] = (live.get("metadata") or {}).get("resourceVersion")
        logging.info(f"Replacing deployment {name}")
        self.app_client.replace_namespaced_deployment(name, self.namespace, body=body)
        return True

    def remove_wordpress(self):
        logging.info(f"Deleting deployment {self.deploy_name}")
        try:
            self.app_client.delete_namespaced_deployment(self.deploy_name, self.namespace)
        except ApiException as e:
            if e.status != 404:
                raise
            logging.debug(e)
            logging.info(f"Deployment {self.deploy_name} was already gone")
