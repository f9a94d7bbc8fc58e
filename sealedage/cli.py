"""
Sealed Age CLI — entry point for all operations.

Usage:
    sealedage run                         # Start the operator
    sealedage render sealed.yaml -i key   # Decrypt a manifest offline, print the Secret
    sealedage version                     # Show version
"""

from __future__ import annotations

import argparse
import base64
import dataclasses
import logging
import sys
from pathlib import Path

from sealedage.constants import LABEL_MANAGED_BY, MANAGED_BY, PRIVATE_KEY_FIELD


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="sealedage",
        description="Sealed Age — decrypts age-encrypted SealedAge resources into Secrets.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    # run
    run_parser = subparsers.add_parser("run", help="Start the operator")
    run_parser.add_argument("--key-namespace", help="Namespace containing age key Secrets")
    run_parser.add_argument("--key-label-key", help="Label key for age key Secrets")
    run_parser.add_argument("--key-label-val", help="Label value for age key Secrets")
    run_parser.add_argument(
        "--namespace",
        "-n",
        action="append",
        default=[],
        help="Namespace to watch (repeatable; default: all namespaces)",
    )
    run_parser.add_argument(
        "--all-namespaces", "-A", action="store_true", help="Watch the whole cluster"
    )
    run_parser.add_argument("--liveness", help="Liveness endpoint, e.g. http://0.0.0.0:8081/healthz")
    run_parser.add_argument(
        "--peering", help="Peering object name for leader election (disables standalone mode)"
    )
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    # render
    render_parser = subparsers.add_parser(
        "render", help="Decrypt a SealedAge manifest locally and print the resulting Secret"
    )
    render_parser.add_argument("manifest", type=Path, help="SealedAge YAML file ('-' for stdin)")
    render_parser.add_argument(
        "--identity",
        "-i",
        type=Path,
        action="append",
        required=True,
        help="age identity file (repeatable, tried in order)",
    )

    # version
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from sealedage import __version__

        print(f"sealedage {__version__}")
        return 0

    if args.command == "run":
        return _cmd_run(args)
    elif args.command == "render":
        return _cmd_render(args)
    else:
        parser.print_help()
        return 0


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _resolve_config(args: argparse.Namespace):
    """Environment config with CLI flags layered on top."""
    from sealedage.config import get_config

    cfg = get_config()
    key_pool = dataclasses.replace(
        cfg.key_pool,
        namespace=args.key_namespace or cfg.key_pool.namespace,
        label_key=args.key_label_key or cfg.key_pool.label_key,
        label_value=args.key_label_val or cfg.key_pool.label_value,
    )
    namespaces = () if args.all_namespaces else tuple(args.namespace) or cfg.namespaces
    return dataclasses.replace(
        cfg,
        key_pool=key_pool,
        namespaces=namespaces,
        liveness_endpoint=args.liveness or cfg.liveness_endpoint,
        standalone=cfg.standalone and not args.peering,
        log_level="DEBUG" if args.verbose else cfg.log_level,
    )


def _cmd_run(args: argparse.Namespace) -> int:
    import kopf

    cfg = _resolve_config(args)
    _configure_logging(cfg.log_level)

    # Registers the handlers with kopf's default registry
    import sealedage.kube.operator  # noqa: F401

    logger = logging.getLogger("sealedage")
    if cfg.clusterwide:
        logger.info("Starting SealedAge operator (cluster-wide)")
    else:
        logger.info("Starting SealedAge operator (namespaces: %s)", ", ".join(cfg.namespaces))

    kopf.run(
        clusterwide=cfg.clusterwide,
        namespaces=list(cfg.namespaces),
        liveness_endpoint=cfg.liveness_endpoint or None,
        standalone=cfg.standalone,
        peering_name=args.peering,
        memo=kopf.Memo(config=cfg),
    )
    return 0


def _load_candidates(paths: list[Path]):
    from sealedage.crypto.identity import KeyCandidate

    return [KeyCandidate(name=str(p), data={PRIVATE_KEY_FIELD: p.read_bytes()}) for p in paths]


def render_secret(sealed, plain: dict[str, bytes]) -> dict:
    """Secret manifest (wire form) for a decrypted SealedAge."""
    metadata: dict = {
        "name": sealed.name,
        "labels": {LABEL_MANAGED_BY: MANAGED_BY},
    }
    if sealed.namespace:
        metadata["namespace"] = sealed.namespace
    if sealed.uid:
        ref = sealed.owner_reference()
        metadata["ownerReferences"] = [
            {
                "apiVersion": ref.api_version,
                "kind": ref.kind,
                "name": ref.name,
                "uid": ref.uid,
                "controller": ref.controller,
                "blockOwnerDeletion": ref.block_owner_deletion,
            }
        ]
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": metadata,
        "type": sealed.spec.secret_type,
        "data": {k: base64.b64encode(v).decode("ascii") for k, v in sorted(plain.items())},
    }


def _cmd_render(args: argparse.Namespace) -> int:
    import yaml

    from sealedage.constants import KIND_SEALED_AGE
    from sealedage.controller.reconcile import decrypt_all
    from sealedage.errors import DecryptionFailure, InvalidResourceError
    from sealedage.models import SealedAge

    try:
        text = sys.stdin.read() if str(args.manifest) == "-" else args.manifest.read_text()
        candidates = _load_candidates(args.identity)
    except OSError as e:
        print(f"Error: {e}")
        return 1

    try:
        documents = [d for d in yaml.safe_load_all(text) if d]
    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in {args.manifest}: {e}")
        return 1

    rendered = []
    for doc in documents:
        if not isinstance(doc, dict) or doc.get("kind") != KIND_SEALED_AGE:
            continue
        try:
            sealed = SealedAge.from_body(doc)
            plain = decrypt_all(sealed, candidates)
        except InvalidResourceError as e:
            print(f"Error: {e}")
            return 1
        except DecryptionFailure as e:
            print(f"Error: {sealed.key}: {e}")
            return 1
        rendered.append(render_secret(sealed, plain))

    if not rendered:
        print(f"Error: No {KIND_SEALED_AGE} documents found in {args.manifest}")
        return 1

    print(yaml.safe_dump_all(rendered, sort_keys=False), end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
