from rest_framework import serializers
from .models import Payment
from .services import REVIEW_ACTIONS


class PaymentSerializer(serializers.ModelSerializer):
    job_title = serializers.ReadOnlyField(source='job.title')
    has_proof = serializers.ReadOnlyField()

    class Meta:
        model = Payment
        fields = [
            'id', 'transaction_id', 'job', 'job_title', 'payer', 'recipient', 'amount', 'currency',
            'payment_method', 'description', 'status', 'has_proof', 'proof_filename', 'proof_mime_type',
            'proof_note', 'proof_uploaded_at', 'resolution', 'processed_at', 'completed_at', 'created_at'
        ]
        read_only_fields = fields


class PaymentDetailSerializer(PaymentSerializer):
    """Includes the proof image itself; only used for single-payment responses."""

    class Meta(PaymentSerializer.Meta):
        fields = PaymentSerializer.Meta.fields + ['proof_image']
        read_only_fields = fields


class PaymentProofSerializer(serializers.Serializer):
    image_data = serializers.CharField(trim_whitespace=False)
    filename = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    mime_type = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    note = serializers.CharField(required=False, allow_blank=True, default='')

    def to_internal_value(self, data):
        # Accept the camelCase keys the web client sends
        if hasattr(data, 'get'):
            data = {
                'image_data': data.get('image_data', data.get('imageData')),
                'filename': data.get('filename', ''),
                'mime_type': data.get('mime_type', data.get('mimeType', '')),
                'note': data.get('note', ''),
            }
            data = {key: value for key, value in data.items() if value is not None}
        return super().to_internal_value(data)

    def validate_image_data(self, value):
        if not value.startswith(('data:image/', 'https://', 'http://')):
            raise serializers.ValidationError("Proof must be an image data URL or an image link.")
        return value


class PaymentReviewSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=sorted(REVIEW_ACTIONS))
    resolution = serializers.CharField(required=False, allow_blank=True, default='')
