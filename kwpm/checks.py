"""
Offline checks on a Deployment document. Each check raises DescriptorError on
the first problem it finds; validate() runs them all.
"""
import logging

from kwpm.errors import DescriptorError
from kwpm.specs import SHARED_VOLUME


def _pod_spec(deploy):
    try:
        return deploy["spec"]["template"]["spec"]
    except (KeyError, TypeError):
        raise DescriptorError("document has no spec.template.spec")


def _containers(deploy):
    containers = _pod_spec(deploy).get("containers") or []
    if not containers:
        raise DescriptorError("pod template declares no containers")
    return containers


def check_selector(deploy):
    spec = deploy.get("spec") or {}
    selector = (spec.get("selector") or {}).get("matchLabels") or {}
    template_labels = ((spec.get("template") or {}).get("metadata") or {}).get("labels") or {}

    if not selector:
        raise DescriptorError("selector.matchLabels is empty")

    for key, value in selector.items():
        if template_labels.get(key) != value:
            raise DescriptorError(
                f"selector label {key}={value} not found in template labels {template_labels}"
            )


def check_shared_mount(deploy, volume=SHARED_VOLUME):
    paths = {}
    for container in _containers(deploy):
        mounts = [ m for m in container.get("volumeMounts") or [] if m.get("name") == volume ]
        if not mounts:
            raise DescriptorError(f"container {container.get('name')} does not mount {volume}")
        paths[container.get("name")] = mounts[0].get("mountPath")

    if len(set(paths.values())) != 1:
        raise DescriptorError(f"{volume} is mounted at different paths: {paths}")

    return next(iter(paths.values()))


def check_secret_refs(deploy):
    secret_names = set()
    keys = []
    for container in _containers(deploy):
        for env in container.get("env") or []:
            ref = (env.get("valueFrom") or {}).get("secretKeyRef")
            if not ref:
                continue
            secret_names.add(ref.get("name"))
            keys.append(ref.get("key"))

    if not keys:
        raise DescriptorError("no environment variable is sourced from a secret")
    if len(secret_names) != 1:
        raise DescriptorError(f"secret env vars reference several secrets: {sorted(secret_names)}")
    if len(set(keys)) != len(keys):
        raise DescriptorError(f"secret keys are not distinct: {keys}")

    return secret_names.pop(), keys


def check_volumes(deploy):
    declared = { v.get("name") for v in _pod_spec(deploy).get("volumes") or [] }
    for container in _containers(deploy):
        for mount in container.get("volumeMounts") or []:
            if mount.get("name") not in declared:
                raise DescriptorError(
                    f"container {container.get('name')} mounts undeclared volume {mount.get('name')}"
                )


def check_metadata(deploy):
    name = (deploy.get("metadata") or {}).get("name")
    if not name:
        raise DescriptorError("metadata.name is missing")
    return name


def validate(deploy):
    name = check_metadata(deploy)
    logging.debug(f"Validating deployment {name}")
    check_selector(deploy)
    check_volumes(deploy)
    # the shared mount contract only binds pods that declare the shared volume
    if any(v.get("name") == SHARED_VOLUME for v in _pod_spec(deploy).get("volumes") or []):
        check_shared_mount(deploy)
    check_secret_refs(deploy)


def referenced_objects(deploy):
    refs = { "secrets": set(), "configmaps": set(), "claims": set() }
    pod = _pod_spec(deploy)

    for volume in pod.get("volumes") or []:
        if "persistentVolumeClaim" in volume:
            refs["claims"].add(volume["persistentVolumeClaim"]["claimName"])
        if "configMap" in volume:
            refs["configmaps"].add(volume["configMap"]["name"])
        if "secret" in volume:
            refs["secrets"].add(volume["secret"]["secretName"])

    for container in pod.get("containers") or []:
        for env in container.get("env") or []:
            source = env.get("valueFrom") or {}
            if "secretKeyRef" in source:
                refs["secrets"].add(source["secretKeyRef"]["name"])
            if "configMapKeyRef" in source:
                refs["configmaps"].add(source["configMapKeyRef"]["name"])

    return refs
