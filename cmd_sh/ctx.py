import dataclasses
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlsplit


@dataclass
class Context:
    req_orig: str
    req_path: str
    req_srch: str
    sys_cpu_arch: Optional[str] = None
    sys_cpu_ven_id: Optional[str] = None
    sys_host: Optional[str] = None
    sys_os_de_id: Optional[str] = None
    sys_os_id: Optional[str] = None
    sys_os_plat: Optional[str] = None
    sys_os_ver_id: Optional[str] = None
    sys_os_ver_code: Optional[str] = None
    sys_user: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        return {
            key: value
            for key, value in dataclasses.asdict(self).items()
            if value is not None
        }


# Query parameter names for the system fields, in field order
SYS_PARAMS = {
    "sys_cpu_arch": "sysCpuArch",
    "sys_cpu_ven_id": "sysCpuVenId",
    "sys_host": "sysHost",
    "sys_os_de_id": "sysOsDeId",
    "sys_os_id": "sysOsId",
    "sys_os_plat": "sysOsPlat",
    "sys_os_ver_id": "sysOsVerId",
    "sys_os_ver_code": "sysOsVerCode",
    "sys_user": "sysUser",
}


def get_ctx(url: str) -> Context:
    """
    Build a context record from a request URL. Platform values are carried
    verbatim from the query string; normalizing them is left to the caller.
    """
    if url.endswith("/"):
        url = url[:-1]
    split = urlsplit(url)
    params: Dict[str, List[str]] = parse_qs(split.query, keep_blank_values=True)
    origin = f"{split.scheme}://{split.netloc}" if split.netloc else ""
    return Context(
        req_orig=origin,
        req_path=split.path or "/",
        req_srch=f"?{split.query}" if split.query else "",
        **{
            field: params[param][0] if param in params else None
            for field, param in SYS_PARAMS.items()
        },
    )


def with_ctx(line: str, context: Context) -> str:
    if "{" not in line:
        return line
    for key, value in dataclasses.asdict(context).items():
        line = line.replace(f"{{{key.upper()}}}", value if value is not None else "")
    return line
