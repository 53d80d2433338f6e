#!/usr/bin/env python3
import sys
import logging
from pathlib import Path
from argparse import ArgumentParser

from mtftool.mtf import MTFFile
from mtftool.mtferrors import MTFError
from o3dtool.o3d import O3DModel, O3DError, write_ply, write_obj

writers = {
    "ply": write_ply,
    "obj": write_obj,
}

argparser = ArgumentParser(description="Convert a DarkStone O3D model to PLY or OBJ.")
argparser.add_argument("model", help="O3D file, or the entry name inside --archive")
argparser.add_argument("-a", "--archive", type=Path, help="read the model out of this MTF archive")
argparser.add_argument("-f", "--format", choices=sorted(writers), default="ply")
argparser.add_argument("-o", "--out", type=Path, help="output file (default: stdout)")

def load_model(path, archive=None):
    if archive is None:
        return O3DModel.load(path)
    with MTFFile(archive) as mtf:
        return O3DModel(mtf.read(path))

def summary(obj):
    tris = int(obj.triangles.sum())
    lines = [
        ("vertices", len(obj.points)),
        ("faces", len(obj.faces)),
        ("triangles", tris),
        ("quads", len(obj.faces) - tris),
    ]
    if obj.bounds is not None:
        mins, maxs = obj.bounds
        lines.append(("mins", "%g %g %g" % tuple(mins)))
        lines.append(("maxs", "%g %g %g" % tuple(maxs)))
        lines.append(("center", "%g %g %g" % tuple(obj.center)))
    return lines

def main(argv=None):
    args = argparser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    try:
        obj = load_model(args.model, args.archive)
    except KeyError:
        print("No entry named %s in %s" % (args.model, args.archive), file=sys.stderr)
        return 1
    except (MTFError, O3DError, OSError) as err:
        print("Can't load %s: %s" % (args.model, err), file=sys.stderr)
        return 1

    for name, value in summary(obj):
        print(name, value, sep='\t', file=sys.stderr)

    write = writers[args.format]
    if args.out is None:
        write(obj, sys.stdout)
    else:
        with args.out.open("w") as fd:
            write(obj, fd)
    return 0

if __name__ == "__main__":
    sys.exit(main())
