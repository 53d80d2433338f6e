"""DarkStone O3D models.

Layout (little endian, packed):

    u32 vertexCount, u32 faceCount, u32 unknown[2]
    vertexCount * { f32 x, y, z }
    faceCount   * { u8 bgra[4], f32 texCoords[4][2], u16 index[4],
                    u32 unknown, u16 texNumber }

A face is a quad unless index[3] is 0xFFFF, in which case it is a
triangle and its last texture coordinate is (0, 0). Texture coordinates
are in texels of a 256x256 map. texNumber picks the texture: the Knight's
faces use 15, matching K0015_KNIGHT.TGA / R0015_KNIGHT.TGA.
"""
import numpy as np

from collections import namedtuple
from struct import calcsize, unpack_from

O3DHeader = namedtuple("O3DHeader", "vertex_count face_count unknown1 unknown2")

HEADER_FMT = "<4I"
HEADER_SIZE = calcsize(HEADER_FMT)

vertex_dtype = np.dtype("<f4")
VERTEX_SIZE = 3 * vertex_dtype.itemsize

face_dtype = np.dtype([
    ("color",      "u1", 4),       # b, g, r, a
    ("texcoords",  "<f4", (4, 2)),
    ("index",      "<u2", 4),
    ("unknown",    "<u4"),         # 0x25 on most models
    ("tex_number", "<u2"),
])

INVALID_INDEX = 0xFFFF
TEXTURE_SIZE = 256

class O3DError(ValueError):
    pass

def _array(data, dtype, count, offset):
    if count == 0:
        return np.empty(0, dtype=dtype)
    return np.frombuffer(data, dtype=dtype, count=count, offset=offset)

class O3DModel:
    def __init__(self, data):
        data = memoryview(data)
        if len(data) < HEADER_SIZE:
            raise O3DError("O3D header truncated (%d bytes)" % len(data))
        self.hdr = O3DHeader(*unpack_from(HEADER_FMT, data, 0))

        face_offset = HEADER_SIZE + self.hdr.vertex_count * VERTEX_SIZE
        end = face_offset + self.hdr.face_count * face_dtype.itemsize
        if len(data) < end:
            raise O3DError("O3D data truncated: %d vertices and %d faces need %d bytes, have %d"
                           % (self.hdr.vertex_count, self.hdr.face_count, end, len(data)))

        self.points = _array(data, vertex_dtype, self.hdr.vertex_count * 3, HEADER_SIZE).reshape(-1, 3)
        self.faces = _array(data, face_dtype, self.hdr.face_count, face_offset)

        for n, idx in enumerate(self.face_indices()):
            if len(idx) and idx.max() >= len(self.points):
                raise O3DError("Face %d references vertex %d of %d" % (n, idx.max(), len(self.points)))

    @classmethod
    def load(cls, path):
        with open(path, "rb") as fd:
            return cls(fd.read())

    @property
    def triangles(self):
        return self.faces["index"][:, 3] == INVALID_INDEX

    @property
    def bounds(self):
        """(mins, maxs) of the vertex positions, None for an empty model."""
        if not len(self.points):
            return None
        return self.points.min(axis=0), self.points.max(axis=0)

    @property
    def center(self):
        if not len(self.points):
            return None
        return self.points.mean(axis=0, dtype=np.float64)

    def face_indices(self):
        for idx in self.faces["index"]:
            yield idx[:3] if idx[3] == INVALID_INDEX else idx

    def face_texcoords(self):
        for face in self.faces:
            count = 3 if face["index"][3] == INVALID_INDEX else 4
            yield face["texcoords"][:count] / TEXTURE_SIZE

def write_ply(obj, fd):
    print("""ply
format ascii 1.0
element vertex %d
property float x
property float y
property float z
element face %d
property list uchar int vertex_index
property uchar red
property uchar green
property uchar blue
end_header""" % (len(obj.points), len(obj.faces)), file=fd)

    for point in obj.points:
        print("%g %g %g" % tuple(point), file=fd)
    for idx, face in zip(obj.face_indices(), obj.faces):
        b, g, r, a = face["color"]
        print("%d %s %d %d %d" % (len(idx), " ".join(str(x) for x in idx), r, g, b), file=fd)

def write_obj(obj, fd):
    for point in obj.points:
        print("v", *("%g" % x for x in point), file=fd)

    faces = []
    vt = 1
    for idx, uvs in zip(obj.face_indices(), obj.face_texcoords()):
        for u, v in uvs:
            print("vt %g %g" % (u, v), file=fd)
        faces.append(" ".join("%d/%d" % (x + 1, vt + n) for n, x in enumerate(idx)))
        vt += len(idx)

    for face in faces:
        print("f", face, file=fd)
