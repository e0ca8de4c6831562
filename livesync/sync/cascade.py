"""Best-effort cascading updates across collections.

Products reference their category by name rather than by id, so renaming a
category has to rewrite every product that carries the old name. The
fan-out is not a transaction: each product is updated independently, a
failure neither stops nor rolls back the others, and a failed product keeps
the old name until someone saves it again. Failures are only visible in the
log and in the returned report. Each update writes the full product with the
new name, so re-running a cascade for the same rename is safe.
"""

import structlog

from livesync.models.entities import Product
from livesync.sync.models import CascadeReport
from livesync.sync.store import LiveCollectionStore

log = structlog.stdlib.get_logger()


def cascade_category_rename(
    products: LiveCollectionStore[Product], old_name: str, new_name: str
) -> CascadeReport:
    """
    Rewrite the category of every product in the current snapshot named ``old_name``.

    Args:
        products: Active product store; its current snapshot selects the targets
        old_name: Category name being replaced
        new_name: New category name

    Returns:
        CascadeReport listing updated and failed product ids
    """
    report = CascadeReport(
        collection=products.name,
        field="category",
        old_value=old_name,
        new_value=new_name,
    )

    if not old_name or old_name == new_name:
        return report

    targets = products.find(lambda product: product.category == old_name)

    log.info(
        "cascade_started",
        collection=products.name,
        old_value=old_name,
        new_value=new_name,
        targets=len(targets),
    )

    for product in targets:
        renamed = product.model_copy(update={"category": new_name})
        try:
            products.update(renamed)
            report.updated_ids.append(product.id)
        except Exception as e:
            report.failed[product.id] = str(e)
            log.error(
                "cascade_update_failed",
                collection=products.name,
                document_id=product.id,
                old_value=old_name,
                new_value=new_name,
                error=str(e),
            )

    log.info(
        "cascade_completed",
        collection=products.name,
        updated=len(report.updated_ids),
        failed=len(report.failed),
    )

    return report
