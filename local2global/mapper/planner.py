from __future__ import annotations
from typing import Any, Sequence

from local2global.errors import InvalidParentError
from local2global.mapper.models import AttributePreview, MigrationPreview, parse_mappings
from local2global.store.base import TaxonomyStore


def plan(
    store: TaxonomyStore,
    parent_id: int,
    mappings: Sequence[Any],
    auto_create_terms: bool = False,
) -> MigrationPreview:
    """Preview what `apply` would do for this parent, without mutating anything.

    Per attribute:
    - attribute_exists / create_attribute (only when it does not exist yet)
    - terms partitioned into `existing` (local values) and `create` ({value, slug})
    - validation errors; all of them are also flattened into the top-level list
    A term is classified `create` when explicitly requested, when the run
    auto-creates, or because its attribute does not exist yet.
    """
    if store.get_parent(parent_id) is None:
        raise InvalidParentError("Invalid product.", status=404)

    preview = MigrationPreview(parent_id=parent_id)
    for mapping in parse_mappings(mappings):
        target = mapping.target.taxonomy_key
        item = AttributePreview(
            local_label=mapping.local.label,
            target_tax=target,
            attribute_exists=False,
            create_attribute=False,
        )
        if not target:
            item.errors.append("Target taxonomy not provided.")
        item.attribute_exists = bool(target) and store.taxonomy_exists(target)
        if not item.attribute_exists:
            if mapping.create_attribute_if_missing:
                item.create_attribute = True
            elif target:
                item.errors.append(
                    f"Global attribute {target} does not exist and automatic creation was not selected."
                )

        for term in mapping.terms:
            slug = term.desired_term_key
            found = store.get_term_by_slug(slug, target) if item.attribute_exists else None
            if found is not None:
                item.existing.append(term.local_value)
            elif term.create or auto_create_terms or not item.attribute_exists:
                item.create.append({"value": term.local_value, "slug": slug})
            else:
                item.errors.append(f"Term {term.local_value} not found in taxonomy {target}.")

        preview.attributes.append(item)
        preview.errors.extend(item.errors)
    return preview
