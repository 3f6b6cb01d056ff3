from fastapi import APIRouter, Depends
from tableforge.core.dependencies import get_menu_repository, get_table_repository, require_role
from tableforge.core.entities import Principal, Role
from tableforge.core.exceptions import unwrap
from tableforge.modules.menus.schemas import MenuCreate, MenuListResponse, MenuResponse, MenuUpdate
from tableforge.modules.menus.service import MenuService
from tableforge.repositories.base import MenuRepository, TableRepository
from typing import Optional

router = APIRouter(prefix="/menus", tags=["menus"])

require_menu_manager = require_role(Role.MASTER, Role.ADMINISTRATOR)


def get_menu_service(
    menus: MenuRepository = Depends(get_menu_repository),
    tables: TableRepository = Depends(get_table_repository)
) -> MenuService:
    return MenuService(menus, tables)


@router.get("", response_model=MenuListResponse)
async def list_menus(
    search: Optional[str] = None,
    page: int = 1,
    per_page: Optional[int] = None,
    principal: Principal = Depends(require_menu_manager),
    service: MenuService = Depends(get_menu_service)
):
    """List menu items (MASTER/ADMINISTRATOR)"""
    return unwrap(service.list_menus(search=search, page=page, per_page=per_page))


@router.post("", response_model=MenuResponse, status_code=201)
async def create_menu(
    menu_data: MenuCreate,
    principal: Principal = Depends(require_menu_manager),
    service: MenuService = Depends(get_menu_service)
):
    """Create a menu item; a non-separator parent becomes a separator"""
    return unwrap(service.create_menu(menu_data))


@router.put("/{_id}", response_model=MenuResponse)
async def update_menu(
    _id: str,
    menu_data: MenuUpdate,
    principal: Principal = Depends(require_menu_manager),
    service: MenuService = Depends(get_menu_service)
):
    """Update menu item"""
    return unwrap(service.update_menu(_id, menu_data))


@router.delete("/{_id}", status_code=200)
async def delete_menu(
    _id: str,
    principal: Principal = Depends(require_menu_manager),
    service: MenuService = Depends(get_menu_service)
):
    """Send menu item to trash"""
    unwrap(service.delete_menu(_id))
    return None
