"""格式转换模块。"""

from pathlib import Path

from ..models.constants import QualityDefaults, get_extension, get_format_alias
from ..utils.cleanup_helpers import TempFileManager
from ..utils.logging_helpers import get_logger
from .codec import RasterCodec


logger = get_logger()


class FormatConverter:
    """把已有文件重新编码为另一种格式，使用固定的默认质量"""

    def __init__(self, codec: RasterCodec):
        self.codec = codec

    def convert(
        self, path: Path, target_format: str, temp_files: TempFileManager
    ) -> Path:
        """转换格式，输出写入临时目录中的新文件

        Raises:
            UnsupportedOutputFormatError: 平台不支持目标格式编码
            DecodeFailureError: 输入文件无法解码
            EncodeFailureError: 编码失败
        """
        format_name = get_format_alias(target_format)
        quality = (
            QualityDefaults.CONVERT_PNG_LEVEL
            if format_name == "PNG"
            else QualityDefaults.CONVERT_QUALITY
        )
        output_path = temp_files.new_path(path, "converted", get_extension(format_name))

        decoded = self.codec.decode(path)
        self.codec.encode(decoded, output_path, format_name, quality)

        logger.debug(f"格式转换完成: {path.name} → {output_path.name}")
        return output_path
