import click
from flask.cli import with_appcontext

from studyshelf.extensions import db
from studyshelf.models.category import AIModel
from studyshelf.services.providers import ProviderKind


def backfill_provider_kinds():
    """Tag model rows that have no provider_kind. Returns (updated, skipped) names."""
    updated, skipped = [], []
    for model in AIModel.query.filter(AIModel.provider_kind.is_(None)).order_by(AIModel.id).all():
        kind = ProviderKind.guess(model.name)
        if kind is None:
            skipped.append(model.name)
            continue
        model.provider_kind = kind
        updated.append(model.name)
    db.session.commit()
    return updated, skipped


@click.command("backfill-provider-kinds")
@with_appcontext
def backfill_provider_kinds_command():
    """Set provider_kind on AI models created before it was stored."""
    updated, skipped = backfill_provider_kinds()
    click.echo(f"Updated {len(updated)} models")
    for name in skipped:
        click.echo(f"Could not infer a provider for {name!r}; set it by hand")
