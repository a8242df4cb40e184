"""
gRPC contract for the image analysis backend.

Message classes are built at import time from a descriptor that mirrors
proto/image_service.proto, so neither side needs protoc-generated modules.
The wire format is identical to the compiled contract.
"""

import grpc
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "image_service"
SERVICE_NAME = f"{PACKAGE}.ImageProcessor"
PROCESS_IMAGE_METHOD = f"/{SERVICE_NAME}/ProcessImage"

_F = descriptor_pb2.FieldDescriptorProto


def _add_message(file_proto, name, fields):
    msg = file_proto.message_type.add()
    msg.name = name
    for number, (field_name, field_type, extra) in enumerate(fields, start=1):
        field = msg.field.add()
        field.name = field_name
        field.number = number
        field.type = field_type
        field.label = _F.LABEL_REPEATED if extra.get("repeated") else _F.LABEL_OPTIONAL
        if "type_name" in extra:
            field.type_name = f".{PACKAGE}.{extra['type_name']}"


def _build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    fp = descriptor_pb2.FileDescriptorProto()
    fp.name = "image_service.proto"
    fp.package = PACKAGE
    fp.syntax = "proto3"

    _add_message(fp, "ImageRequest", [
        ("image_data", _F.TYPE_BYTES, {}),
        ("image_format", _F.TYPE_STRING, {}),
    ])
    _add_message(fp, "ImageInfo", [
        ("width", _F.TYPE_UINT32, {}),
        ("height", _F.TYPE_UINT32, {}),
        ("format", _F.TYPE_STRING, {}),
        ("size_bytes", _F.TYPE_UINT64, {}),
        ("aspect_ratio", _F.TYPE_FLOAT, {}),
    ])
    _add_message(fp, "ColorInfo", [
        ("dominant_color", _F.TYPE_STRING, {}),
        ("is_grayscale", _F.TYPE_BOOL, {}),
        ("has_transparency", _F.TYPE_BOOL, {}),
    ])
    _add_message(fp, "BoundingBox", [
        ("x1", _F.TYPE_FLOAT, {}),
        ("y1", _F.TYPE_FLOAT, {}),
        ("x2", _F.TYPE_FLOAT, {}),
        ("y2", _F.TYPE_FLOAT, {}),
        ("label", _F.TYPE_STRING, {}),
        ("confidence", _F.TYPE_FLOAT, {}),
    ])
    _add_message(fp, "ImageResponse", [
        ("success", _F.TYPE_BOOL, {}),
        ("message", _F.TYPE_STRING, {}),
        ("image_info", _F.TYPE_MESSAGE, {"type_name": "ImageInfo"}),
        ("color_info", _F.TYPE_MESSAGE, {"type_name": "ColorInfo"}),
        ("bounding_boxes", _F.TYPE_MESSAGE, {"type_name": "BoundingBox", "repeated": True}),
    ])

    service = fp.service.add()
    service.name = "ImageProcessor"
    method = service.method.add()
    method.name = "ProcessImage"
    method.input_type = f".{PACKAGE}.ImageRequest"
    method.output_type = f".{PACKAGE}.ImageResponse"
    return fp


# Private pool: keeps these types out of the process-wide default pool
_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file_descriptor().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))


ImageRequest = _message_class("ImageRequest")
ImageResponse = _message_class("ImageResponse")
ImageInfo = _message_class("ImageInfo")
ColorInfo = _message_class("ColorInfo")
BoundingBox = _message_class("BoundingBox")


class ImageProcessorStub:
    """Client stub for ImageProcessor (equivalent of a generated *_pb2_grpc stub)."""

    def __init__(self, channel: grpc.Channel):
        self.ProcessImage = channel.unary_unary(
            PROCESS_IMAGE_METHOD,
            request_serializer=ImageRequest.SerializeToString,
            response_deserializer=ImageResponse.FromString,
        )


def add_image_processor_to_server(servicer, server: grpc.Server):
    """Register a servicer exposing ``ProcessImage(request, context)``."""
    handlers = {
        "ProcessImage": grpc.unary_unary_rpc_method_handler(
            servicer.ProcessImage,
            request_deserializer=ImageRequest.FromString,
            response_serializer=ImageResponse.SerializeToString,
        ),
    }
    server.add_generic_rpc_handlers((grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),))


def response_to_dict(response) -> dict:
    """
    Convert an ImageResponse into the gateway's JSON shape.

    Absent sub-messages become None and a missing box list becomes [];
    no key is ever omitted.
    """
    image_info = None
    if response.HasField("image_info"):
        info = response.image_info
        image_info = {
            "width": info.width,
            "height": info.height,
            "format": info.format,
            "size_bytes": info.size_bytes,
            "aspect_ratio": info.aspect_ratio,
        }

    color_info = None
    if response.HasField("color_info"):
        color = response.color_info
        color_info = {
            "dominant_color": color.dominant_color,
            "is_grayscale": color.is_grayscale,
            "has_transparency": color.has_transparency,
        }

    return {
        "success": response.success,
        "message": response.message,
        "image_info": image_info,
        "color_info": color_info,
        "bounding_boxes": [
            {
                "x1": box.x1,
                "y1": box.y1,
                "x2": box.x2,
                "y2": box.y2,
                "label": box.label,
                "confidence": box.confidence,
            }
            for box in response.bounding_boxes
        ],
    }
