import argparse
import json
import os
import sys

from opal_loader.config import LoaderConfig
from opal_loader.errors import OpalLoaderError
from opal_loader.log import log, set_verbose
from opal_loader.resolver import PathResolver
from transpiler import Transpiler

DEFAULT_LOADER_PATH = "opal-loader"


def fail(message):
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def load_config(args):
    overrides = {"verbose": True} if args.verbose else {}
    config = LoaderConfig.from_env(**overrides)
    set_verbose(config.verbose)
    return config


def cmd_transpile(args):
    config = load_config(args)
    if not os.path.exists(args.filename):
        fail(f"File '{args.filename}' not found.")
    with open(args.filename, 'r') as f:
        source = f.read()

    options = {
        "filename": os.path.abspath(args.filename),
        "relativeFileName": args.relative_name or os.path.relpath(args.filename),
        "sourceRoot": os.getcwd(),
        "requirable": args.requirable,
        "arity_check": args.arity_check,
        "externalOpal": args.external_opal,
        "stubs": args.stub or [],
    }
    try:
        result = Transpiler(config).transpile(source, options, {"path": args.loader_path})
    except OpalLoaderError as e:
        fail(f"Transpile Failed:\n{e}")

    if args.output:
        with open(args.output, 'w') as f:
            f.write(result.code)
        log(f"Wrote {args.output}")
    else:
        sys.stdout.write(result.code)


def cmd_resolve(args):
    config = load_config(args)
    transpiler = Transpiler(config)
    try:
        resolved = PathResolver(transpiler.search_path).resolve(args.name, args.from_file)
    except OpalLoaderError as e:
        fail(str(e))
    print(json.dumps(resolved.model_dump()))


def cmd_compiler(args):
    config = load_config(args)
    try:
        compiler = Transpiler(config).provider.get_compiler()
        version = compiler.version()
    except OpalLoaderError as e:
        fail(str(e))
    print(f"origin:  {compiler.origin}")
    print(f"version: {version}")
    print(f"file:    {compiler.filename or '-'}")


def cmd_load_path(args):
    config = load_config(args)
    try:
        paths = Transpiler(config).search_path
    except OpalLoaderError as e:
        fail(str(e))
    for path in paths:
        print(path)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Opal loader CLI")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output (sent to stderr)")
    subparsers = parser.add_subparsers(dest="command")

    transpile = subparsers.add_parser("transpile", help="Compile a Ruby file for the bundler")
    transpile.add_argument("filename")
    transpile.add_argument("--relative-name", help="Module key (default: path relative to cwd)")
    transpile.add_argument("--requirable", action="store_true", help="Register the module in Opal.modules")
    transpile.add_argument("--arity-check", action="store_true", help="Check method argument counts")
    transpile.add_argument("--external-opal", action="store_true", help="Leave requires of opal alone")
    transpile.add_argument("--stub", action="append", help="Module to stub out (repeatable)")
    transpile.add_argument("--loader-path", default=DEFAULT_LOADER_PATH, help="Loader path used in rewritten requires")
    transpile.add_argument("-o", "--output", help="Write code to this file instead of stdout")

    resolve = subparsers.add_parser("resolve", help="Resolve a module name on the load path")
    resolve.add_argument("name")
    resolve.add_argument("--from", dest="from_file", help="Requesting file (relative path base)")

    subparsers.add_parser("compiler", help="Show the selected Opal compiler")
    subparsers.add_parser("load-path", help="Show the effective load path")

    args = parser.parse_args(argv)

    if args.command == "transpile":
        cmd_transpile(args)
    elif args.command == "resolve":
        cmd_resolve(args)
    elif args.command == "compiler":
        cmd_compiler(args)
    elif args.command == "load-path":
        cmd_load_path(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
