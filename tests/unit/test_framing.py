"""
行分隔 JSON 解碼與訊息編碼單元測試

測試部分輸入緩衝、錯誤行處理及輸出 frame 格式。
"""

import datetime
import decimal
import json

import pytest

from core.exceptions import ProtocolError
from protocol import messages
from protocol.framing import LineDecoder


class TestLineDecoder:
    """LineDecoder 測試"""

    def test_partial_input_is_buffered(self):
        """✅ 沒有換行的位元組不產生 frame"""
        decoder = LineDecoder()

        assert decoder.feed(b'{"type":"server_') == []
        assert decoder.pending > 0

        items = decoder.feed(b'info_request"}\n')
        assert items == [{"type": "server_info_request"}]
        assert decoder.pending == 0

    def test_multiple_lines_in_one_chunk(self):
        """✅ 一個 chunk 內多行依序解碼"""
        decoder = LineDecoder()
        items = decoder.feed(b'{"a":1}\n{"b":2}\n{"c":')

        assert items == [{"a": 1}, {"b": 2}]
        assert decoder.feed(b'3}\n') == [{"c": 3}]

    def test_malformed_line_does_not_stop_stream(self):
        """❌ 無效 JSON 產生錯誤，後續行仍被處理"""
        decoder = LineDecoder()
        items = decoder.feed(b'{not json}\n{"ok":true}\n')

        assert len(items) == 2
        assert isinstance(items[0], ProtocolError)
        assert items[0].message == "Invalid JSON: {not json}"
        assert items[1] == {"ok": True}

    def test_invalid_utf8_line(self):
        """❌ 無效 UTF-8 視為無效 JSON"""
        decoder = LineDecoder()
        items = decoder.feed(b'\xff\xfe\n{"a":1}\n')

        assert isinstance(items[0], ProtocolError)
        assert items[0].message.startswith("Invalid JSON:")
        assert items[1] == {"a": 1}

    def test_blank_lines_are_skipped(self):
        """✅ 空白行靜默略過"""
        decoder = LineDecoder()
        assert decoder.feed(b'\n   \n\r\n{"a":1}\n') == [{"a": 1}]

    def test_json_null_is_a_value(self):
        """✅ null 是合法 JSON 值，不是空白行"""
        decoder = LineDecoder()
        assert decoder.feed(b'null\n') == [None]

    def test_oversized_line_in_one_chunk(self):
        """❌ 超過長度限制的行產生一個錯誤"""
        decoder = LineDecoder(max_line_bytes=16)
        items = decoder.feed(b'"' + b'x' * 30 + b'"\n{"a":1}\n')

        assert len(items) == 2
        assert isinstance(items[0], ProtocolError)
        assert items[1] == {"a": 1}

    def test_oversized_line_across_chunks(self):
        """❌ 跨 chunk 的超長行只回報一次，並丟棄到換行為止"""
        decoder = LineDecoder(max_line_bytes=16)

        first = decoder.feed(b'x' * 20)
        assert len(first) == 1
        assert isinstance(first[0], ProtocolError)
        assert decoder.pending == 0

        assert decoder.feed(b'y' * 40) == []
        assert decoder.feed(b'yyy\n{"a":1}\n') == [{"a": 1}]

    def test_finish_discards_remainder(self):
        """✅ 串流結束時丟棄未完成的行"""
        decoder = LineDecoder()
        assert decoder.feed(b'{"a":1}') == []

        decoder.finish()
        assert decoder.pending == 0


class TestMessages:
    """訊息編碼測試"""

    def test_frame_is_single_line(self):
        """✅ 輸出 frame 以單一換行結尾，內容換行被跳脫"""
        frame = messages.tool_response_frame({"result": {"text": "line1\nline2"}})
        encoded = messages.encode_frame(frame)

        assert encoded.endswith(b"\n")
        assert encoded.count(b"\n") == 1
        assert json.loads(encoded) == frame

    def test_driver_values_are_converted(self):
        """✅ Decimal、時間與二進位值轉為 JSON 相容值"""
        row = {
            "price": decimal.Decimal("12.50"),
            "created": datetime.datetime(2024, 1, 2, 3, 4, 5),
            "day": datetime.date(2024, 1, 2),
            "duration": datetime.timedelta(hours=1, minutes=30),
            "text": b"hello",
            "blob": b"\xff\x00",
        }
        decoded = json.loads(messages.dumps(row))

        assert decoded["price"] == "12.50"
        assert decoded["created"] == "2024-01-02T03:04:05"
        assert decoded["day"] == "2024-01-02"
        assert decoded["duration"] == "1:30:00"
        assert decoded["text"] == "hello"
        assert decoded["blob"] == "/wA="

    def test_unserializable_value_raises(self):
        """❌ 無法轉換的值拋出 TypeError"""
        with pytest.raises(TypeError):
            messages.dumps({"value": object()})

    @pytest.mark.parametrize("message", [
        [],
        "tool_request",
        {"type": "bogus"},
        {"request": {}},
    ])
    def test_parse_inbound_rejects_unknown(self, message):
        """❌ 非物件或未知類型訊息"""
        with pytest.raises(ProtocolError) as exc_info:
            messages.parse_inbound(message)
        assert exc_info.value.message == "Unknown message type or invalid request format"

    def test_resource_response_frame(self):
        """✅ 資源回應帶錯誤訊息"""
        frame = messages.resource_response_frame(error="Resource access not implemented")
        assert frame == {
            "type": "resource_response",
            "response": {"content": None, "error": "Resource access not implemented"},
        }
