"""
CLI for tenant feature flag ops.

Commands:
  list       --tenant T                 Tenant flag rows (+ live status, conflicts).
  effective  --tenant T                 Effective-flags audit projection.
  set        --tenant T --flag F        Upsert a tenant row (--enabled/--disabled, --rollout).
  add        --tenant T --flag F        Create a custom flag (TENANT_ needs --yes).
  override   --tenant T --flag F        Force on / kill / clear (--value on|off|clear).
  conflicts  --tenant T                 Flags whose stored value differs from the effective one.
  check      --tenant T --flag F        Evaluate locally (snapshot file, tenant dir, or --remote).
  snapshot   --tenant T                 Save backend layers into the tenant snapshot file.

Connections:
- service/flag_panel.py for every admin mutation (same validation as the web panel)
- app/feature_flags.py for local evaluation

Usage:
  python -m cli.main list --tenant t_123 --cookie session=abc
"""

from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

from app.config import load_settings
from app.container import Container
from app.feature_flags import Flags
from flags.models import FlagSnapshot
from flags.storage import load_snapshot_file

_OVERRIDE_VALUES = {"on": True, "off": False, "clear": None}


def _cookies(pairs: Optional[List[str]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for p in pairs or []:
        if "=" not in p:
            raise ValueError(f"Cookie must be NAME=VALUE, got {p!r}")
        k, v = p.split("=", 1)
        out[k.strip()] = v.strip()
    return out


def _container(args: argparse.Namespace) -> Container:
    override = {}
    if getattr(args, "api", None):
        override["API_BASE_URL"] = args.api
    return Container(load_settings(override))


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def _panel_result(panel, ok: bool) -> int:
    if not ok:
        print(f"ERROR: {panel.error or 'failed'}", file=sys.stderr)
        return 1
    _print(panel.view())
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    panel = _container(args).panel(args.tenant, cookies=_cookies(args.cookie))
    return _panel_result(panel, panel.load())


def cmd_effective(args: argparse.Namespace) -> int:
    client = _container(args).api_client(_cookies(args.cookie))
    rows = client.list_effective_flags(args.tenant)
    _print({flag: row.to_dict() for flag, row in rows.items()})
    return 0


def cmd_set(args: argparse.Namespace) -> int:
    panel = _container(args).panel(args.tenant, cookies=_cookies(args.cookie))
    panel.load()
    return _panel_result(panel, panel.upsert(args.flag, enabled=args.enabled, rollout=args.rollout))


def cmd_add(args: argparse.Namespace) -> int:
    def confirm(message: str) -> bool:
        if args.yes:
            return True
        print(message, file=sys.stderr)
        return input("[y/N] ").strip().lower() in {"y", "yes"}

    panel = _container(args).panel(args.tenant, cookies=_cookies(args.cookie), confirm=confirm)
    ok = panel.add_flag(args.flag)
    if not ok and panel.error is None:
        print("Cancelled.", file=sys.stderr)
        return 1
    return _panel_result(panel, ok)


def cmd_override(args: argparse.Namespace) -> int:
    panel = _container(args).panel(args.tenant, cookies=_cookies(args.cookie))
    return _panel_result(panel, panel.set_tenant_override(args.flag, _OVERRIDE_VALUES[args.value]))


def cmd_conflicts(args: argparse.Namespace) -> int:
    panel = _container(args).panel(args.tenant, cookies=_cookies(args.cookie))
    if not panel.load():
        print(f"ERROR: {panel.error}", file=sys.stderr)
        return 1
    _print(panel.conflicts())
    return 0


def _remote_snapshot(c: Container, tenant: str, cookies: Dict[str, str]) -> FlagSnapshot:
    client = c.api_client(cookies)
    rows = client.list_tenant_flags(tenant)
    effective = client.list_effective_flags(tenant)
    return FlagSnapshot.from_effective_rows(tenant, effective.values(), rows)


def cmd_check(args: argparse.Namespace) -> int:
    c = _container(args)
    if args.snapshot:
        snap = load_snapshot_file(Path(args.snapshot))
        flags = Flags(c.settings, lambda _t: snap, c.dev_overrides)
    elif args.remote:
        snap = _remote_snapshot(c, args.tenant, _cookies(args.cookie))
        flags = Flags(c.settings, lambda _t: snap, c.dev_overrides)
    else:
        flags = c.flags
    enabled = flags.is_feature_enabled(args.flag, args.tenant, args.region)
    row = flags.resolver_for(args.tenant).explain(args.flag, args.tenant)
    _print({"flag": args.flag, "tenant": args.tenant, "region": args.region,
            "enabled": enabled, "explain": row.to_dict()})
    return 0


def cmd_snapshot(args: argparse.Namespace) -> int:
    c = _container(args)
    snap = _remote_snapshot(c, args.tenant, _cookies(args.cookie))
    path = c.snapshots.save(args.tenant, snap)
    print(path)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="shelf-flags",
        description="Tenant feature flag admin CLI"
    )
    p.add_argument("--api", help="Backend base URL (defaults to API_BASE_URL)")
    p.add_argument("--cookie", action="append", help="Session cookie NAME=VALUE (repeatable)")
    sub = p.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("list", help="List tenant flag rows with live status")
    sp.add_argument("--tenant", required=True)
    sp.set_defaults(func=cmd_list)

    sp = sub.add_parser("effective", help="Show effective-flags audit rows")
    sp.add_argument("--tenant", required=True)
    sp.set_defaults(func=cmd_effective)

    sp = sub.add_parser("set", help="Upsert a tenant flag row")
    sp.add_argument("--tenant", required=True)
    sp.add_argument("--flag", required=True)
    g = sp.add_mutually_exclusive_group()
    g.add_argument("--enabled", dest="enabled", action="store_const", const=True)
    g.add_argument("--disabled", dest="enabled", action="store_const", const=False)
    sp.add_argument("--rollout", default=None)
    sp.set_defaults(func=cmd_set, enabled=None)

    sp = sub.add_parser("add", help="Create a custom flag (TENANT_ or FF_ prefix)")
    sp.add_argument("--tenant", required=True)
    sp.add_argument("--flag", required=True)
    sp.add_argument("--yes", action="store_true", help="Skip the custom flag confirmation")
    sp.set_defaults(func=cmd_add)

    sp = sub.add_parser("override", help="Force on, kill, or clear a tenant override")
    sp.add_argument("--tenant", required=True)
    sp.add_argument("--flag", required=True)
    sp.add_argument("--value", required=True, choices=sorted(_OVERRIDE_VALUES))
    sp.set_defaults(func=cmd_override)

    sp = sub.add_parser("conflicts", help="List stored/effective conflicts")
    sp.add_argument("--tenant", required=True)
    sp.set_defaults(func=cmd_conflicts)

    sp = sub.add_parser("check", help="Evaluate a flag locally")
    sp.add_argument("--tenant", required=True)
    sp.add_argument("--flag", required=True)
    sp.add_argument("--region", default=None)
    src = sp.add_mutually_exclusive_group()
    src.add_argument("--snapshot", help="Path to a snapshot JSON file")
    src.add_argument("--remote", action="store_true", help="Build layers from the backend")
    sp.set_defaults(func=cmd_check)

    sp = sub.add_parser("snapshot", help="Save backend layers to the tenant snapshot file")
    sp.add_argument("--tenant", required=True)
    sp.set_defaults(func=cmd_snapshot)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
