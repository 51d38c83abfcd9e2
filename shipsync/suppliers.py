from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import BaseModel

from .domain import SupplierProfile


class SupplierCatalog(BaseModel):
    suppliers: List[SupplierProfile]


def load_supplier_profiles(path: Optional[str], environ: Optional[Mapping[str, str]] = None) -> List[SupplierProfile]:
    """Read supplier profiles from JSON, taking credentials from the environment when absent.

    For a supplier keyed ``dropxl`` the fallbacks are ``DROPXL_EMAIL`` and
    ``DROPXL_API_TOKEN``.
    """
    if not path:
        return []
    env = os.environ if environ is None else environ
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    catalog = SupplierCatalog(**data)

    profiles: List[SupplierProfile] = []
    for profile in catalog.suppliers:
        prefix = profile.key.upper()
        profiles.append(
            profile.model_copy(
                update={
                    "email": profile.email or env.get(f"{prefix}_EMAIL"),
                    "api_token": profile.api_token or env.get(f"{prefix}_API_TOKEN"),
                }
            )
        )
    return profiles
