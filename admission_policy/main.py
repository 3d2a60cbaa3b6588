import argparse
import json
import logging
import sys

from admission_policy.config import Config
from admission_policy.errors import AdmissionPolicyError
from admission_policy.services.manifest_loader import load_manifest_file
from admission_policy.services.policy_engine import PolicyEngine
from admission_policy.services.workloads import extract_pod

logger = logging.getLogger(__name__)

EXIT_COMPLIANT = 0
EXIT_VIOLATIONS = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kure-policy",
        description="Evaluate Kubernetes workload manifests against the Kure admission policy",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Evaluate manifest files")
    check.add_argument("files", nargs="+", help="YAML manifest files")
    check.add_argument("--format", choices=["text", "json"], default="text")
    check.add_argument("--disable", action="append", default=[], metavar="RULE",
                       help="Skip a rule by id (repeatable)")

    subparsers.add_parser("rules", help="List the rule catalog")

    serve = subparsers.add_parser("serve", help="Run the admission webhook")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    return parser


def check_files(files, engine: PolicyEngine, output_format: str = "text") -> int:
    """Evaluate every document in every file and print the results"""
    results = []
    try:
        for path in files:
            for manifest in load_manifest_file(path):
                metadata = manifest.get("metadata") or {}
                name = metadata.get("name") or "<unnamed>"
                if extract_pod(manifest) is None:
                    logger.info(f"Skipping {path}: {manifest.get('kind')}/{name} is not subject to pod policy")
                    continue
                violations = engine.evaluate(manifest)
                results.append({
                    "file": str(path),
                    "kind": manifest.get("kind"),
                    "name": name,
                    "violations": [v.model_dump(mode="json") for v in violations],
                })
    except AdmissionPolicyError as e:
        logger.error(f"Cannot evaluate manifests: {e}")
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if output_format == "json":
        print(json.dumps(results, indent=2))
    else:
        for result in results:
            header = f"{result['file']}: {result['kind']}/{result['name']}"
            if not result["violations"]:
                print(f"{header}: compliant")
                continue
            print(f"{header}: {len(result['violations'])} violation(s)")
            for violation in result["violations"]:
                print(f"  [{violation['severity']}] {violation['rule_id']}: {violation['message']}")

    if any(result["violations"] for result in results):
        return EXIT_VIOLATIONS
    return EXIT_COMPLIANT


def list_catalog(engine: PolicyEngine) -> int:
    for info in engine.list_rules():
        print(f"{info.rule_id:<36} {info.scope.value:<10} {info.severity.value:<9} {info.description}")
    return EXIT_COMPLIANT


def serve(config: Config, host: str = None, port: int = None) -> int:
    import uvicorn
    from admission_policy.core.app import create_app

    uvicorn.run(create_app(config), host=host or config.host, port=port or config.port)
    return EXIT_COMPLIANT


def main(argv=None) -> int:
    config = Config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    args = build_parser().parse_args(argv)

    if args.command == "serve":
        logger.info("Starting Kure admission policy webhook...")
        return serve(config, args.host, args.port)

    disabled = list(config.disabled_rules) + list(getattr(args, "disable", []))
    engine = PolicyEngine(disabled_rules=disabled, max_workers=config.max_workers)

    if args.command == "rules":
        return list_catalog(engine)
    return check_files(args.files, engine, args.format)


if __name__ == "__main__":
    sys.exit(main())
