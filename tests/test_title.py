import pytest

from bulk_editor.schemas.bulk_edit import TitleEdit
from bulk_editor.services.bulk_edit import BulkEditValidationError
from bulk_editor.services.title import handle_title_edit


@pytest.mark.asyncio
async def test_uppercase_then_identical_edit_is_skipped(client, shop):
    edit = TitleEdit(editType="capitalize", capitalizationType="uppercase")

    first = await handle_title_edit(client, ["3"], edit)
    assert first.status == "ok"
    assert first.results[0].original_value == "wireless mouse"
    assert first.results[0].new_value == "WIRELESS MOUSE"
    assert shop.products["3"]["title"] == "WIRELESS MOUSE"
    assert len(shop.writes()) == 1

    second = await handle_title_edit(client, ["3"], edit)
    assert second.status == "ok"
    assert second.results[0].skipped is True
    assert second.stats.products_skipped == 1
    assert len(shop.writes()) == 1


@pytest.mark.asyncio
async def test_add_text_to_many_products(client, shop):
    result = await handle_title_edit(client, ["1", "2"], TitleEdit(editType="addTextEnd", textToAdd="- Sale"))

    assert result.success is True
    assert result.stats.products_updated == 2
    assert shop.products["1"]["title"] == "Blue Shirt - Sale"
    assert shop.products["2"]["title"] == "Red Hat - Sale"


@pytest.mark.asyncio
async def test_accepts_product_gids(client, shop):
    result = await handle_title_edit(
        client, ["gid://shopify/Product/2"], TitleEdit(editType="addTextBeginning", textToAdd="New")
    )
    assert result.status == "ok"
    assert shop.products["2"]["title"] == "New Red Hat"


@pytest.mark.asyncio
@pytest.mark.parametrize("number_of_characters", [0, -3])
async def test_truncate_requires_positive_length(client, shop, number_of_characters):
    with pytest.raises(BulkEditValidationError, match="numberOfCharacters"):
        await handle_title_edit(client, ["1"], TitleEdit(editType="truncate", numberOfCharacters=number_of_characters))
    assert shop.calls == []


@pytest.mark.asyncio
async def test_missing_edit_type_rejected_before_any_request(client, shop):
    with pytest.raises(BulkEditValidationError, match="Missing required parameter: editType"):
        await handle_title_edit(client, ["1"], TitleEdit())
    assert shop.calls == []


@pytest.mark.asyncio
async def test_replace_requires_replacement_text(client, shop):
    with pytest.raises(BulkEditValidationError, match="replacementText"):
        await handle_title_edit(client, ["1"], TitleEdit(editType="replaceText", textToAdd="Blue"))
    assert shop.calls == []
