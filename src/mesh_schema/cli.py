"""mesh-schema command line interface

    mesh-schema validate  CATALOG MESSAGE PAYLOAD [PAYLOAD ...] [--batch]
    mesh-schema example   CATALOG MESSAGE [--count N] [--format json|yaml]
    mesh-schema negatives CATALOG MESSAGE [--boundaries]
    mesh-schema compat    OLD_CATALOG NEW_CATALOG [--allow-removal]

Results are printed as JSON (or YAML) on stdout. The exit status is 1 when a
payload is invalid or a breaking change is found, 2 on usage/config errors.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from mesh_schema.config.project import ValidatorConfig
from mesh_schema.core.catalog import SchemaCatalog
from mesh_schema.core.compat import check_catalog_compatibility
from mesh_schema.core.compiler import ValidatorCompiler
from mesh_schema.core.errors import MeshSchemaError
from mesh_schema.generators.edge_case_gen import generate_negative_cases
from mesh_schema.generators.example_gen import generate_examples


logger = logging.getLogger("mesh_schema.cli")


def _load_payload(path: str) -> Any:
    text = Path(path).read_text(encoding="utf-8")
    if path.endswith((".yaml", ".yml")):
        return yaml.safe_load(text)
    return json.loads(text)


def _dump(data: Any, fmt: str = "json") -> str:
    if fmt == "yaml":
        return yaml.dump(data, allow_unicode=True, default_flow_style=False, sort_keys=False)
    return json.dumps(data, indent=2, ensure_ascii=False)


def cmd_validate(args: argparse.Namespace, config: ValidatorConfig) -> int:
    catalog = SchemaCatalog.load(args.catalog)
    compiler = ValidatorCompiler(
        catalog,
        context=config.validation_context(),
        enable_cache=config.cache_enabled(),
        max_workers=args.workers or config.max_workers(),
    )

    payloads = []
    for path in args.payloads:
        loaded = _load_payload(path)
        if args.batch and isinstance(loaded, list):
            payloads.extend(loaded)
        else:
            payloads.append(loaded)

    results = compiler.validate_batch(args.message, payloads)
    output = {
        "message": args.message,
        "valid": all(r.valid for _, r in results),
        "results": [{"index": i, **r.to_dict()} for i, r in results],
    }
    print(_dump(output, args.format))
    return 0 if output["valid"] else 1


def cmd_example(args: argparse.Namespace, config: ValidatorConfig) -> int:
    catalog = SchemaCatalog.load(args.catalog)
    schema = catalog.require(args.message)
    seed = args.seed if args.seed is not None else config.generator_seed()
    examples = generate_examples(schema, count=args.count, seed=seed)
    print(_dump(examples[0] if args.count == 1 else examples, args.format))
    return 0


def cmd_negatives(args: argparse.Namespace, config: ValidatorConfig) -> int:
    catalog = SchemaCatalog.load(args.catalog)
    schema = catalog.require(args.message)
    options = config.generator_options()
    cases = generate_negative_cases(
        schema,
        include_boundaries=args.boundaries or bool(options.get("include_boundaries")),
        seed=options.get("seed"),
    )
    print(_dump([c.to_dict() for c in cases], args.format))
    return 0


def cmd_compat(args: argparse.Namespace, config: ValidatorConfig) -> int:
    old = SchemaCatalog.load(args.old_catalog)
    new = SchemaCatalog.load(args.new_catalog)
    changes = check_catalog_compatibility(
        old, new,
        allow_schema_removal=args.allow_removal,
        allow_property_removal=args.allow_removal,
    )
    print(_dump({"compatible": not changes, "changes": [c.to_dict() for c in changes]}, args.format))
    return 0 if not changes else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mesh-schema",
        description="Validate message payloads against a schema catalog",
    )
    parser.add_argument("--config-dir", type=Path, default=None,
                        help="Project directory holding .mesh/validator.json (default: cwd)")
    parser.add_argument("--format", "-f", choices=["json", "yaml"], default="json",
                        help="Output format (default: json)")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase log verbosity (-v info, -vv debug)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("validate", help="Validate payload files against a message schema")
    p.add_argument("catalog", help="Catalog file (.json/.yaml)")
    p.add_argument("message", help="Message name")
    p.add_argument("payloads", nargs="+", help="Payload files (.json/.yaml)")
    p.add_argument("--batch", action="store_true",
                   help="Treat a top-level list in a payload file as many payloads")
    p.add_argument("--workers", type=int, default=None, help="Worker threads for batch validation")
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("example", help="Generate conforming example payloads")
    p.add_argument("catalog")
    p.add_argument("message")
    p.add_argument("--count", "-n", type=int, default=1)
    p.add_argument("--seed", type=int, default=None)
    p.set_defaults(func=cmd_example)

    p = sub.add_parser("negatives", help="Generate counter-examples")
    p.add_argument("catalog")
    p.add_argument("message")
    p.add_argument("--boundaries", action="store_true",
                   help="Include bound, pattern, enum and item-count violations")
    p.set_defaults(func=cmd_negatives)

    p = sub.add_parser("compat", help="List breaking changes between two catalogs")
    p.add_argument("old_catalog")
    p.add_argument("new_catalog")
    p.add_argument("--allow-removal", action="store_true",
                   help="Do not report removed schemas and properties")
    p.set_defaults(func=cmd_compat)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)

    config = ValidatorConfig(args.config_dir)
    try:
        return args.func(args, config)
    except (MeshSchemaError, FileNotFoundError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == '__main__':
    sys.exit(main())
