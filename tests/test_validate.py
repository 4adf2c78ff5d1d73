from openrpc_tool.document import ContentDescriptor, Method, OpenRPC
from openrpc_tool.validate import duplicates, validate


def param(name, required=None):
    return ContentDescriptor(name=name, schema=True, required=required)


def make_document(*methods):
    return OpenRPC(openrpc="1.2.6", info={"title": "t", "version": "1"}, methods=list(methods))


def test_valid_document_has_no_findings():
    document = make_document(
        Method(name="a", params=[param("x", True), param("y")]),
        Method(name="b", params=[]),
    )
    assert validate(document) == []


def test_duplicates_reported_once_in_order():
    assert duplicates(["a", "b", "b", "a", "b", "c"]) == ["b", "a"]


def test_duplicate_method_names():
    findings = validate(make_document(Method(name="a", params=[]), Method(name="b", params=[]), Method(name="a", params=[])))
    assert [f.message for f in findings] == ["the following method names are duplicated: a"]


def test_duplicate_param_names():
    findings = validate(make_document(Method(name="m", params=[param("x", True), param("x", True)])))
    assert findings[0].message == "the following parameter names on method m are duplicated: x"
    assert findings[0].method == "m"


def test_required_after_optional():
    method = Method(name="m", params=[param("a", True), param("b"), param("c", True), param("d", True)])
    [finding] = validate(make_document(method))
    assert finding.message == (
        "the following required parameters on method m follow the optional parameter b: c, d"
    )
    assert list(finding.names) == ["c", "d"]


def test_required_false_counts_as_optional():
    method = Method(name="m", params=[param("a", False), param("b", True)])
    assert len(validate(make_document(method))) == 1
