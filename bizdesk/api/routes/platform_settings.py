"""
api/routes/platform_settings.py
-------------------------------
Platform-wide key/value settings, super-admin only.

GET /platform-settings  — {category: {key: {value, description, data_type}}}
PUT /platform-settings  — create or replace one key
"""

from fastapi import APIRouter

from bizdesk.dependencies import CurrentSuperAdmin, DbSession, Meta
from bizdesk.schemas.platform import PlatformSettings, PlatformSettingUpdate, SettingValue
from bizdesk.services.platform_service import PlatformSettingsService, decode_value

router = APIRouter(prefix="/platform-settings", tags=["Platform Settings"])


@router.get("", response_model=PlatformSettings, summary="All platform settings")
async def get_settings(admin: CurrentSuperAdmin, db: DbSession) -> PlatformSettings:
    return PlatformSettings(settings=await PlatformSettingsService.grouped(db))


@router.put("", response_model=SettingValue, summary="Save a platform setting")
async def update_setting(
    body: PlatformSettingUpdate, admin: CurrentSuperAdmin, db: DbSession, meta: Meta
) -> SettingValue:
    setting = await PlatformSettingsService.upsert(db, body, admin, ip_address=meta.ip_address)
    return SettingValue(
        value=decode_value(setting.value),
        description=setting.description,
        data_type=setting.data_type,
        updated_at=setting.updated_at,
    )
