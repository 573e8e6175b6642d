from danmu_gateway.danmaku_format import format_danmu_response, generate_dandan_xml, to_comment_models


def test_json_response_numbers_comments_without_cid():
    response = format_danmu_response([{"p": "1,1,16777215", "m": "a"}, {"p": "2,4,255", "m": "b"}])
    assert response.json() == {"count": 2, "comments": [
        {"cid": 0, "p": "1,1,16777215", "m": "a"},
        {"cid": 1, "p": "2,4,255", "m": "b"},
    ]}


def test_xml_fills_missing_or_invalid_font_size():
    xml = generate_dandan_xml(to_comment_models([
        {"p": "1.5,1,16777215", "m": "missing"},
        {"p": "2.5,1,,255", "m": "empty"},
        {"p": "3.5,5,18,65280,[tencent]", "m": "kept"},
    ]))
    assert '<d p="1.5,1,25,16777215">missing</d>' in xml
    assert '<d p="2.5,1,25,255">empty</d>' in xml
    assert '<d p="3.5,5,18,65280,[tencent]">kept</d>' in xml
    assert "<maxlimit>3</maxlimit>" in xml


def test_format_parameter_is_case_insensitive():
    response = format_danmu_response([], "XML")
    assert response.headers["Content-Type"] == "application/xml"
    assert response.body.decode("utf-8").endswith("</i>")


def test_null_or_non_numeric_cid_falls_back_to_position():
    response = format_danmu_response([
        {"cid": None, "p": "1,1,16777215", "m": "x"},
        {"cid": "abc", "p": "2,1,16777215", "m": "y"},
        {"cid": "42", "p": "3,1,16777215", "m": "z"},
    ])
    assert [c["cid"] for c in response.json()["comments"]] == [0, 1, 42]
