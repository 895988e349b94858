import sys
import logging

import click

from kwpm import checks, specs
from kwpm.errors import KwpmError


def _client(ctx):
    from kwpm.kwpm import Kwpm
    return Kwpm(**ctx.obj)


@click.group()
@click.option("--kubeconfig", default=None, help="Path to kubeconfig, defaults to $KUBECONFIG")
@click.option("--namespace", "-n", default=None, help="Target namespace, defaults to $KWPM_NAMESPACE")
@click.option("--verbose", "-v", is_flag=True)
@click.pass_context
def cli(ctx, kubeconfig, namespace, verbose):
    """Manage a wordpress site and its mariadb on kubernetes"""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    opts = {}
    if kubeconfig:
        opts["kubeconfig"] = kubeconfig
    if namespace:
        opts["namespace"] = namespace
    ctx.obj = opts


@cli.command()
@click.option("--with-pvc", is_flag=True, help="Also emit the wordpress claim")
def render(with_pvc):
    """Print the wordpress deployment as YAML"""
    docs = [ specs.wordpress_deployment() ]
    if with_pvc:
        docs.insert(0, specs.wordpress_pvc())
    click.echo(specs.to_yaml(*docs), nl=False)


@cli.command()
@click.argument("manifest", type=click.File("r"))
def validate(manifest):
    """Check every Deployment in MANIFEST"""
    deployments = [ d for d in specs.load_yaml(manifest.read()) if d.get("kind") == "Deployment" ]
    if not deployments:
        raise click.ClickException("no Deployment found")
    for deploy in deployments:
        name = (deploy.get("metadata") or {}).get("name") or "<unnamed>"
        try:
            checks.validate(deploy)
        except KwpmError as e:
            raise click.ClickException(f"{name}: {e}")
        click.echo(f"{name}: ok")


@cli.command()
@click.pass_context
def apply(ctx):
    """Create or update the wordpress deployment"""
    try:
        changed = _client(ctx).apply_wordpress()
    except KwpmError as e:
        raise click.ClickException(str(e))
    click.echo("applied" if changed else "unchanged")


@cli.command()
@click.pass_context
def remove(ctx):
    """Delete the wordpress deployment"""
    _client(ctx).remove_wordpress()


@cli.command()
@click.pass_context
def namespaces(ctx):
    """List kwpm namespaces"""
    for ns in _client(ctx).get_kwpm_namespaces():
        click.echo(ns.metadata.name)


@cli.group()
def mariadb():
    """Shared mariadb instance"""
    pass


@mariadb.command("create")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True,
              help="MariaDB root password")
@click.option("--node", required=True, help="Hostname of the node holding the local volume")
@click.pass_context
def mariadb_create(ctx, password, node):
    try:
        _client(ctx).create_mariadb_if_not_exists(password, node)
    except KwpmError as e:
        raise click.ClickException(str(e))


@mariadb.command("remove")
@click.pass_context
def mariadb_remove(ctx):
    _client(ctx).remove_mariadb()


def main():
    return cli()

if __name__ == '__main__':
    sys.exit(main())
