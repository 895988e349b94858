class KwpmError(Exception):
    pass


class DescriptorError(KwpmError):
    """The document would be rejected by, or misbehave under, the orchestrator."""


class MissingReferenceError(KwpmError):
    def __init__(self, namespace, missing):
        self.namespace = namespace
        self.missing = missing
        names = ", ".join(f"{kind}/{name}" for kind, name in missing)
        super().__init__(f"missing in namespace {namespace}: {names}")


class AlreadyExistsError(KwpmError):
    pass
