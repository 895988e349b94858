"""
Desired-state documents for a kwpm site, in the camelCase form the API server takes.
Every builder returns a fresh dict so callers can patch it freely.
"""
import yaml

SHARED_VOLUME = "wordpress-persistent-storage"
SHARED_PATH = "/var/www/html"

MARIADB_NAMESPACE = "kwpm-mariadb"
MARIADB_PV = "kwpm-mariadb-pv"
MARIADB_PVC = "kwpm-mariadb-pvc"


def wordpress_deployment(name="wordpress",
                         wordpress_image="wordpress:6-fpm-alpine",
                         nginx_image="nginx:alpine",
                         db_host="mariadb.mariadb-wordpress",
                         secret_name="mysql-pass",
                         claim_name="wp-pv-claim",
                         nginx_configmap="nginxthroughpass",
                         uploads_configmap="wp-uploads-ini-config",
                         shared_path=SHARED_PATH):
    labels = { "app": name, "tier": "frontend" }

    def secret_env(var, key):
        return { "name": var, "valueFrom": { "secretKeyRef": { "name": secret_name, "key": key }}}

    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": { "name": name, "labels": { "app": name }},
        "spec": {
            "selector": { "matchLabels": dict(labels) },
            "strategy": { "type": "Recreate" },
            "template": {
                "metadata": { "labels": dict(labels) },
                "spec": {
                    "containers": [
                        {
                            "image": wordpress_image,
                            "name": "wordpress",
                            "env": [
                                { "name": "WORDPRESS_DB_HOST", "value": db_host },
                                secret_env("WORDPRESS_DB_USER", "user"),
                                secret_env("WORDPRESS_DB_PASSWORD", "password"),
                                secret_env("WORDPRESS_DB_NAME", "db_name"),
                            ],
                            "volumeMounts": [
                                { "name": SHARED_VOLUME, "mountPath": shared_path },
                                {
                                    "name": "uploads-ini-conf",
                                    "mountPath": "/usr/local/etc/php/conf.d/uploads.ini",
                                    "subPath": "uploads.ini",
                                    "readOnly": True,
                                },
                            ],
                        },
                        {
                            "image": nginx_image,
                            "name": "nginx",
                            "ports": [{ "containerPort": 80, "name": "nginx" }],
                            "volumeMounts": [
                                { "name": SHARED_VOLUME, "mountPath": shared_path },
                                { "name": "nginxconf", "mountPath": "/etc/nginx/conf.d", "readOnly": True },
                            ],
                        },
                    ],
                    "volumes": [
                        { "name": SHARED_VOLUME, "persistentVolumeClaim": { "claimName": claim_name }},
                        {
                            "configMap": { "defaultMode": 0o400, "name": nginx_configmap, "optional": False },
                            "name": "nginxconf",
                        },
                        { "configMap": { "name": uploads_configmap }, "name": "uploads-ini-conf" },
                    ],
                },
            },
        },
    }


def wordpress_pvc(claim_name="wp-pv-claim", storage="10Gi"):
    return {
        "apiVersion": "v1",
        "kind": "PersistentVolumeClaim",
        "metadata": { "name": claim_name, "labels": { "app": "wordpress" }},
        "spec": {
            "accessModes": [ "ReadWriteOnce", ],
            "resources": { "requests": { "storage": storage }},
            "volumeMode": "Filesystem",
        },
    }


def namespace(name):
    return { "apiVersion": "v1", "kind": "Namespace", "metadata": { "name": name }}


def mariadb_deployment(image="mariadb:11", secret_name="mysql-pass"):
    labels = { "app": "mariadb" }
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": { "name": "mariadb", "labels": dict(labels) },
        "spec": {
            "selector": { "matchLabels": dict(labels) },
            "strategy": { "type": "Recreate" },
            "template": {
                "metadata": { "labels": dict(labels) },
                "spec": {
                    "containers": [
                        {
                            "image": image,
                            "name": "mariadb",
                            "env": [{
                                "name": "MARIADB_ROOT_PASSWORD",
                                "valueFrom": { "secretKeyRef": { "name": secret_name, "key": "password" }},
                            }],
                            "ports": [{ "containerPort": 3306, "name": "mariadb" }],
                            "volumeMounts": [{ "name": "mariadb-persistent-storage", "mountPath": "/var/lib/mysql" }],
                        }
                    ],
                    "volumes": [
                        { "name": "mariadb-persistent-storage", "persistentVolumeClaim": { "claimName": MARIADB_PVC }}
                    ],
                },
            },
        },
    }


def mariadb_pv(base_path, node_hostname, storage="10Gi"):
    """
    A local volume only exists on one node, so the PV is pinned there and the
    scheduler follows it.
    """
    return {
        "apiVersion": "v1",
        "kind": "PersistentVolume",
        "metadata": { "name": MARIADB_PV, "labels": { "app": "mariadb" }},
        "spec": {
            "capacity": { "storage": storage },
            "accessModes": [ "ReadWriteOnce", ],
            "persistentVolumeReclaimPolicy": "Retain",
            "storageClassName": "local-storage",
            "volumeMode": "Filesystem",
            "local": { "path": f"{base_path.rstrip('/')}/mariadb" },
            "nodeAffinity": {
                "required": {
                    "nodeSelectorTerms": [{
                        "matchExpressions": [{
                            "key": "kubernetes.io/hostname",
                            "operator": "In",
                            "values": [ node_hostname ],
                        }]
                    }]
                }
            },
        },
    }


def mariadb_pvc(storage="10Gi"):
    return {
        "apiVersion": "v1",
        "kind": "PersistentVolumeClaim",
        "metadata": { "name": MARIADB_PVC, "labels": { "app": "mariadb" }},
        "spec": {
            "storageClassName": "local-storage",
            "volumeName": MARIADB_PV,
            "resources": { "requests": { "storage": storage }},
            "accessModes": [ "ReadWriteOnce", ],
            "volumeMode": "Filesystem",
        },
    }


def mariadb_svc():
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": { "name": "mariadb", "labels": { "app": "mariadb" }},
        "spec": {
            "type": "ClusterIP",
            "selector": { "app": "mariadb" },
            "ports": [{ "port": 3306, "targetPort": 3306, "protocol": "TCP" }],
        },
    }


def mysql_secret(password, user=None, db_name=None, name="mysql-pass"):
    # only the keys we were given end up in the secret
    data = { "password": password }
    if user is not None:
        data["user"] = user
    if db_name is not None:
        data["db_name"] = db_name
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": { "name": name },
        "type": "Opaque",
        "stringData": data,
    }


def to_yaml(*documents):
    return yaml.safe_dump_all(documents, default_flow_style=False, sort_keys=False)


def load_yaml(text):
    # scalars and lists are not resources
    return [ doc for doc in yaml.safe_load_all(text) if isinstance(doc, dict) and doc ]
