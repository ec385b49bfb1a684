"""
IMS content-package manifest (APIP profile) for the assembled items and stimuli.

Each packaged item or stimulus contributes a main resource that lists its
dependencies, followed by a resource for its metadata file and one per asset.
"""

from __future__ import annotations

import enum
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional

MANIFEST_NAME = "imsmanifest.xml"
APIP_NS = "http://www.imsglobal.org/xsd/apip/apipv1p0/imscp_v1p1"
EMPTY_MANIFEST = f'<manifest xmlns="{APIP_NS}"/>'


class ResourceType(enum.Enum):
    ITEM = "imsqti_apipitem_xmlv2p2"
    STIMULUS = "imsqti_apipstimulus_xmlv2p2"
    METADATA = "resourcemetadata/apipv1p0"
    OTHER_ASSET = "associatedcontent/apip_xmlv1p0/learning-application-resource"


@dataclass
class ManifestNode:
    identifier: str
    type: ResourceType
    folder: str
    href: str
    assets: List["ManifestNode"] = field(default_factory=list)
    metadata: Optional["ManifestNode"] = None
    stimulus: Optional["ManifestNode"] = None
    word_list: Optional["ManifestNode"] = None
    tutorial: Optional["ManifestNode"] = None

    def add_asset(self, file_name: str) -> "ManifestNode":
        for a in self.assets:
            if a.href == self.folder + file_name:
                return a
        node = ManifestNode(
            identifier=file_name.replace(".", "_"),
            type=ResourceType.OTHER_ASSET,
            folder=self.folder,
            href=self.folder + file_name,
        )
        self.assets.append(node)
        return node

    def set_metadata(self, file_name: str = "metadata.xml") -> "ManifestNode":
        self.metadata = ManifestNode(
            identifier=f"{self.identifier}_metadata",
            type=ResourceType.METADATA,
            folder=self.folder,
            href=self.folder + file_name,
        )
        return self.metadata


def _resource(parent: ET.Element, node: ManifestNode) -> ET.Element:
    res = ET.SubElement(parent, "resource", {"identifier": node.identifier, "type": node.type.value})
    ET.SubElement(res, "file", {"href": node.href})
    return res


def _dependency(res: ET.Element, node: Optional[ManifestNode]) -> None:
    if node is not None:
        ET.SubElement(res, "dependency", {"identifierref": node.identifier})


def _trailing_resources(resources: ET.Element, node: ManifestNode) -> None:
    if node.metadata is not None:
        _resource(resources, node.metadata)
    for asset in node.assets:
        _resource(resources, asset)


class ManifestGraph:
    def __init__(self):
        self.items: List[ManifestNode] = []
        self.stimuli: List[ManifestNode] = []

    def add(self, node: ManifestNode) -> None:
        if node.type is ResourceType.ITEM:
            self.items.append(node)
        elif node.type is ResourceType.STIMULUS:
            self.stimuli.append(node)
        else:
            raise ValueError(f"Only items and stimuli are top-level resources: {node.identifier}")

    def build_element(self) -> ET.Element:
        manifest = ET.Element(
            "manifest",
            {
                "identifier": "MANIFEST-QTI-1",
                "xmlns": APIP_NS,
                "xmlns:xsi": "http://www.w3.org/2001/XMLSchema-instance",
                "xsi:schemaLocation": f"{APIP_NS} http://www.imsglobal.org/profile/apip/apipv1p0/apipv1p0_imscpv1p2_v1p0.xsd",
            },
        )
        metadata = ET.SubElement(manifest, "metadata")
        ET.SubElement(metadata, "schema").text = "APIP Test"
        ET.SubElement(metadata, "schemaversion").text = "1.0.0"
        ET.SubElement(metadata, "lom", {"xmlns": "http://ltsc.ieee.org/xsd/apipv1p0/LOM/manifest"})
        ET.SubElement(manifest, "organizations")
        resources = ET.SubElement(manifest, "resources")

        for item in self.items:
            res = _resource(resources, item)
            for asset in item.assets:
                _dependency(res, asset)
            _dependency(res, item.word_list)
            _dependency(res, item.tutorial)
            _dependency(res, item.stimulus)
            _dependency(res, item.metadata)
            _trailing_resources(resources, item)

        for stim in self.stimuli:
            res = _resource(resources, stim)
            _dependency(res, stim.word_list)
            for asset in stim.assets:
                _dependency(res, asset)
            _dependency(res, stim.metadata)
            _trailing_resources(resources, stim)

        return manifest

    def to_xml(self) -> bytes:
        return ET.tostring(self.build_element(), encoding="utf-8", xml_declaration=True)
