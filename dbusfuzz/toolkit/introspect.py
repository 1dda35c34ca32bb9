"""introspect.py — Parse D-Bus introspection XML into method signatures."""

import xml.etree.ElementTree as ET


def parse_introspection(xml: str) -> dict:
    """Return interfaces, their methods and child nodes of one object.

    Result dict: {
        "interfaces": {interface: [{"name": str, "in_signatures": list[str],
                                    "out_signatures": list[str]}]},
        "nodes": [child node name, ...],
    }
    """
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise RuntimeError(f"Malformed introspection data: {e}")

    result: dict = {"interfaces": {}, "nodes": []}
    for iface_el in root.findall("interface"):
        iface = iface_el.get("name")
        if not iface:
            continue
        methods = []
        for method_el in iface_el.findall("method"):
            name = method_el.get("name")
            if not name:
                continue
            ins, outs = [], []
            for arg_el in method_el.findall("arg"):
                sig = arg_el.get("type")
                if not sig:
                    continue
                # arguments of methods default to "in"
                (outs if arg_el.get("direction", "in") == "out" else ins).append(sig)
            methods.append({"name": name, "in_signatures": ins, "out_signatures": outs})
        result["interfaces"][iface] = methods

    for node_el in root.findall("node"):
        name = node_el.get("name")
        if name:
            result["nodes"].append(name)
    return result


def child_path(parent: str, node: str) -> str:
    """Object path of child *node* under *parent*."""
    if node.startswith("/"):
        return node
    return parent.rstrip("/") + "/" + node
