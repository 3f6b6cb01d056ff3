import logging
from typing import Any, Dict, Optional
from slugify import slugify
from tableforge.core.entities import Menu, MenuItemType
from tableforge.core.exceptions import ApplicationError, Err, Ok, Result
from tableforge.core.pagination import build_meta, page_window
from tableforge.core.utils import utcnow
from tableforge.modules.menus.schemas import MenuCreate, MenuUpdate
from tableforge.repositories.base import MenuRepository, TableRepository

logger = logging.getLogger(__name__)

TABLE_TYPES = (MenuItemType.TABLE, MenuItemType.FORM)


class MenuService:
    def __init__(self, menus: MenuRepository, tables: TableRepository):
        self.menus = menus
        self.tables = tables

    def _resolve_url(self, item_type: MenuItemType, table_id: Optional[str], slug: str, url: Optional[str]):
        """URL an item points to, or an Err when its table is missing"""
        if item_type in TABLE_TYPES:
            if not table_id:
                return Err(ApplicationError.bad_request(
                    "Table ID is required for table/form types", "INVALID_PARAMETERS"
                ))
            table = self.tables.find_by({"id": table_id})
            if not table:
                return Err(ApplicationError.not_found("Table not found", "TABLE_NOT_FOUND"))
            if item_type == MenuItemType.TABLE:
                return Ok(f"/tables/{table.slug}")
            return Ok(f"/tables/{table.slug}/row/create")
        if item_type == MenuItemType.PAGE:
            return Ok(f"/pages/{slug}")
        return Ok(url)

    def _slug_taken(self, slug: str, menu_id: Optional[str] = None) -> bool:
        existing = self.menus.find_by({"slug": slug, "trashed": False})
        return existing is not None and existing.id != menu_id

    def _promote(self, parent: Menu) -> None:
        """
        A non-separator item that gains a child keeps its destination as a
        new first child and turns into a separator heading.
        """
        if parent.type == MenuItemType.SEPARATOR:
            return
        self.menus.update(parent.id, {
            "type": MenuItemType.SEPARATOR,
            "slug": slugify(f"{parent.name}-separator"),
        })
        self.menus.create({
            "name": parent.name,
            "slug": slugify(parent.name),
            "type": parent.type,
            "table": parent.table,
            "parent": parent.id,
            "url": parent.url,
            "html": parent.html,
            "trashed": False,
            "trashed_at": None,
        })
        logger.info(f"Menu {parent.slug} promoted to separator")

    def create_menu(self, menu_data: MenuCreate) -> Result:
        try:
            slug = slugify(menu_data.name)
            if not slug:
                return Err(ApplicationError.bad_request("Menu name is required", "INVALID_PARAMETERS"))

            parent = None
            if menu_data.parent:
                parent = self.menus.find_by({"id": menu_data.parent, "trashed": False})
                if not parent:
                    return Err(ApplicationError.not_found("Parent menu not found", "PARENT_MENU_NOT_FOUND"))
                slug = slugify(f"{slug}-{parent.slug}")

            if self._slug_taken(slug):
                return Err(ApplicationError.conflict("Menu already exists", "MENU_ALREADY_EXISTS"))

            url = self._resolve_url(menu_data.type, menu_data.table, slug, menu_data.url)
            if isinstance(url, Err):
                return url

            if parent:
                self._promote(parent)

            menu = self.menus.create({
                "name": menu_data.name.strip(),
                "slug": slug,
                "type": menu_data.type,
                "table": menu_data.table if menu_data.type in TABLE_TYPES else None,
                "parent": parent.id if parent else None,
                "url": url.value,
                "html": menu_data.html,
                "trashed": False,
                "trashed_at": None,
            })
            return Ok(menu)
        except Exception as e:
            logger.exception(f"Error creating menu: {e}")
            return Err(ApplicationError.internal(cause="CREATE_MENU_ERROR"))

    def update_menu(self, menu_id: str, menu_data: MenuUpdate) -> Result:
        """
        Update a menu item. Sending ``parent`` moves the item (``null`` moves it
        to the root); the slug is rebuilt whenever the name or parent changes.
        """
        try:
            menu = self.menus.find_by({"id": menu_id, "trashed": False})
            if not menu:
                return Err(ApplicationError.not_found("Menu not found", "MENU_NOT_FOUND"))

            provided = menu_data.model_fields_set
            update_data: Dict[str, Any] = menu_data.model_dump(exclude_unset=True)

            parent = None
            parent_id = menu.parent
            if "parent" in provided:
                parent_id = menu_data.parent or None
                if parent_id == menu.id:
                    return Err(ApplicationError.bad_request("Menu cannot be parent of itself", "INVALID_PARAMETERS"))
            if parent_id:
                parent = self.menus.find_by({"id": parent_id, "trashed": False})
                if not parent:
                    return Err(ApplicationError.not_found("Parent menu not found", "PARENT_MENU_NOT_FOUND"))

            slug = menu.slug
            if "name" in provided or "parent" in provided:
                slug = slugify(menu_data.name or menu.name)
                if not slug:
                    return Err(ApplicationError.bad_request("Menu name is required", "INVALID_PARAMETERS"))
                if parent:
                    slug = slugify(f"{slug}-{parent.slug}")
                if slug != menu.slug and self._slug_taken(slug, menu.id):
                    return Err(ApplicationError.conflict("Menu already exists", "MENU_ALREADY_EXISTS"))

            item_type = menu_data.type or menu.type
            if "type" in provided or "table" in provided:
                table_id = menu_data.table if "table" in provided else menu.table
                url = self._resolve_url(item_type, table_id, slug, menu_data.url or menu.url)
                if isinstance(url, Err):
                    return url
                update_data["url"] = url.value
                update_data["table"] = table_id if item_type in TABLE_TYPES else None
            elif item_type == MenuItemType.PAGE:
                update_data["url"] = f"/pages/{slug}"

            # Promote only when the item actually moves under a new parent
            if parent and "parent" in provided and parent.id != menu.parent:
                self._promote(parent)

            if "name" in update_data:
                update_data["name"] = update_data["name"].strip()
            update_data["slug"] = slug
            update_data["parent"] = parent.id if parent else None
            return Ok(self.menus.update(menu.id, update_data))
        except Exception as e:
            logger.exception(f"Error updating menu {menu_id}: {e}")
            return Err(ApplicationError.internal(cause="UPDATE_MENU_ERROR"))

    def delete_menu(self, menu_id: str) -> Result:
        """Send a menu item to trash; separators must be emptied first"""
        try:
            menu = self.menus.find_by({"id": menu_id, "trashed": False})
            if not menu:
                return Err(ApplicationError.not_found("Menu not found", "MENU_NOT_FOUND"))

            if menu.type == MenuItemType.SEPARATOR and self.menus.count({"parent": menu.id, "trashed": False}):
                return Err(ApplicationError.conflict(
                    "Separator still has active children", "SEPARATOR_HAS_CHILDREN"
                ))

            self.menus.update(menu.id, {"trashed": True, "trashed_at": utcnow()})
            return Ok(None)
        except Exception as e:
            logger.exception(f"Error deleting menu {menu_id}: {e}")
            return Err(ApplicationError.internal(cause="DELETE_MENU_ERROR"))

    def list_menus(self, search: Optional[str] = None, page: Optional[int] = None, per_page: Optional[int] = None) -> Result:
        try:
            page, per_page = page_window(page, per_page)
            query = {"trashed": False}
            menus = self.menus.find_many(query, search=search, page=page, per_page=per_page)
            total = self.menus.count(query, search=search)
            return Ok({"data": menus, "meta": build_meta(total, page, per_page)})
        except Exception as e:
            logger.exception(f"Error listing menus: {e}")
            return Err(ApplicationError.internal(cause="LIST_MENU_PAGINATED_ERROR"))
